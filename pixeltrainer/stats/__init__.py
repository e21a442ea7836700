# -*- coding: utf-8 -*-
"""Summaries of assembled training data."""
