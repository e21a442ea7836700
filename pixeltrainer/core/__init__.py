# -*- coding: utf-8 -*-
"""The core package holds the data model and algorithms for assembling pixel classifier training data.

It defines annotations and classes, tiling and mask rasterization, the per-ROI feature cache, preprocessing,
change tracking and the helper that ties them together.
"""
