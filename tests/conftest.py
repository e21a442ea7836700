# -*- coding: utf-8 -*-
"""Shared fixtures: an in-memory image, a predictable feature calculator and a few annotation classes."""

import math
import threading
import time

import numpy as np
import pytest
from shapely.geometry import box

from pixeltrainer import (
    ROI,
    AnnotationHierarchy,
    AnnotationObject,
    ArrayImageServer,
    FeatureCalculator,
    FeatureMetadata,
    ImageData,
    PathClass,
)


class ConstantFeatureCalculator(FeatureCalculator):
    """Returns the same feature vector for every pixel and records every request it receives.

    With a delay, each calculation sleeps after setting the `started` event, which lets a test act
    while features are being calculated.
    """

    def __init__(self, values=(1.0, 2.0, 3.0, 4.0), input_size=64, pool=1, fail_if=None, delay=0.0):
        super().__init__(FeatureMetadata(input_size, input_size, tuple(f"f{i}" for i in range(len(values)))))
        self.values = np.asarray(values, dtype=np.float32)
        self.pool = pool
        self.fail_if = fail_if
        self.delay = delay
        self.started = threading.Event()
        self.requests = []

    def calculate_features(self, server, request):
        self.requests.append(request)
        self.started.set()
        if self.delay:
            time.sleep(self.delay)
        if self.fail_if is not None and self.fail_if(request):
            raise IOError(f"Simulated read failure for {request}")
        server.read_region(request)
        height = math.ceil(request.output_height / self.pool)
        width = math.ceil(request.output_width / self.pool)
        return np.tile(self.values, (height, width, 1))


@pytest.fixture
def calculator():
    """Constant 4-feature calculator with 64 x 64 input tiles."""
    return ConstantFeatureCalculator()


@pytest.fixture
def server():
    """A blank 512 x 512 single-band image."""
    return ArrayImageServer(np.zeros((1, 512, 512), dtype=np.float32), path="memory://blank")


@pytest.fixture
def tumor():
    return PathClass("Tumor", "#ff0000")


@pytest.fixture
def background():
    return PathClass("Background", "#00ff00")


@pytest.fixture
def two_class_image(server, tumor, background):
    """A 100 x 100 Tumor square and a 40 x 30 Background rectangle."""
    hierarchy = AnnotationHierarchy(
        [
            AnnotationObject(tumor, ROI(box(10, 10, 110, 110))),
            AnnotationObject(background, ROI(box(200, 200, 240, 230))),
        ]
    )
    return ImageData(server, hierarchy)


@pytest.fixture
def make_calculator():
    """Factory for ConstantFeatureCalculator with custom options."""
    return ConstantFeatureCalculator
