# -*- coding: utf-8 -*-
"""Helpers , Aren't they useful ?"""

import zlib

import numpy as np
from shapely.geometry import LineString, box

from ..core.hierarchy import AnnotationHierarchy
from ..core.objects import ROI, AnnotationObject, PathClass
from ..io.raster import ArrayImageServer, ImageData


def default_class_color(name):
    """A stable hex color derived from a class name."""
    value = zlib.crc32(name.encode("utf-8")) & 0xFFFFFF
    return f"#{value:06x}"


def create_sample_data(size=256, n_bands=3, seed=42):
    """Create a synthetic image with a bright square, a darker background and annotations on both.

    Parameters:
    -----------
    size : int
        Width and height of the image in pixels
    n_bands : int
        Number of bands
    seed : int
        Seed for the noise added to the image

    Returns:
    --------
    image_data : ImageData
        In-memory image with "Tumor", "Stroma" and "Background" annotations
    """
    rng = np.random.default_rng(seed)
    image = rng.normal(50, 5, size=(n_bands, size, size)).astype(np.float32)
    quarter = size // 4
    image[:, quarter : 3 * quarter, quarter : 3 * quarter] += 150

    tumor = PathClass("Tumor", "#c80000")
    stroma = PathClass("Stroma", "#96c896")
    background = PathClass("Background", "#ffffff")

    inner = quarter + quarter // 4
    objects = [
        AnnotationObject(tumor, ROI(box(inner, inner, 3 * quarter - quarter // 4, 3 * quarter - quarter // 4))),
        AnnotationObject(stroma, ROI(LineString([(4, size - 8.5), (size - 4, size - 8.5)]))),
        AnnotationObject(background, ROI(box(2, 2, quarter - 2, quarter - 2))),
    ]
    server = ArrayImageServer(image, path="memory://sample")
    return ImageData(server, AnnotationHierarchy(objects))


def memory_usage(helper):
    """Estimate memory held by a PixelClassifierHelper's feature cache and training data, in MB.

    Parameters:
    -----------
    helper : PixelClassifierHelper
        Helper to inspect

    Returns:
    --------
    memory_mb : float
        Estimated memory usage in MB
    """
    memory = 0
    for roi in helper.cache.rois():
        matrix = helper.cache.get(roi)
        if matrix is not None:
            memory += matrix.nbytes

    train_data = helper.get_train_data() if not helper.is_stale else None
    if train_data is not None:
        memory += train_data.features.nbytes + train_data.targets.nbytes

    return memory / (1024 * 1024)
