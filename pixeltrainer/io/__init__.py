# -*- coding: utf-8 -*-
"""The io package contains image servers for raster data and readers and writers for vector annotations.

It abstracts file operations so training data can be assembled from in-memory arrays or files on disk alike.
"""
