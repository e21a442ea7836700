# -*- coding: utf-8 -*-
"""Tests for the per-ROI feature cache and feature extraction."""

import logging

import numpy as np
import pytest
from shapely.geometry import LineString, box

from pixeltrainer import ROI, FeatureCache, RegionRequest, extract_roi_features, rasterize_roi


def test_cache_stores_read_only_matrices():
    """Cached matrices cannot be modified in place."""
    cache = FeatureCache()
    roi = ROI(box(0, 0, 1, 1))
    cache.put(roi, np.ones((3, 2), dtype=np.float32))

    matrix = cache.get(roi)
    assert roi in cache
    assert len(cache) == 1
    with pytest.raises(ValueError):
        matrix[0, 0] = 5


def test_get_or_compute_only_computes_on_miss():
    """A second lookup returns the same matrix without recomputing."""
    cache = FeatureCache()
    roi = ROI(box(0, 0, 1, 1))
    calls = []

    def compute(r):
        calls.append(r)
        return np.zeros((2, 2), dtype=np.float32)

    first = cache.get_or_compute(roi, compute)
    second = cache.get_or_compute(roi, compute)

    assert first is second
    assert calls == [roi]


def test_rois_are_keyed_by_identity():
    """Two ROIs with equal shapes are separate cache entries."""
    cache = FeatureCache()
    a, b = ROI(box(0, 0, 1, 1)), ROI(box(0, 0, 1, 1))
    cache.put(a, np.zeros((1, 1), dtype=np.float32))

    assert a in cache
    assert b not in cache


def test_invalidate_and_clear():
    """Entries can be dropped one at a time or all together."""
    cache = FeatureCache()
    a, b = ROI(box(0, 0, 1, 1)), ROI(box(1, 1, 2, 2))
    cache.put(a, np.zeros((1, 1), dtype=np.float32))
    cache.put(b, np.zeros((1, 1), dtype=np.float32))

    assert cache.invalidate(a) is True
    assert cache.invalidate(a) is False
    assert cache.rois() == [b]

    cache.clear()
    assert len(cache) == 0


def test_roi_invalidated_during_compute_is_not_stored():
    """An entry invalidated while its features are calculated is returned but not kept."""
    cache = FeatureCache()
    roi = ROI(box(0, 0, 1, 1))

    def compute(r):
        cache.invalidate(r)
        return np.zeros((2, 2), dtype=np.float32)

    matrix = cache.get_or_compute(roi, compute)

    assert matrix.shape == (2, 2)
    assert not matrix.flags.writeable
    assert roi not in cache


def test_failed_compute_leaves_no_entry():
    cache = FeatureCache()
    roi = ROI(box(0, 0, 1, 1))

    def compute(r):
        raise IOError("unreadable")

    with pytest.raises(IOError):
        cache.get_or_compute(roi, compute)
    assert roi not in cache
    assert cache.get_or_compute(roi, lambda r: np.ones((1, 1), dtype=np.float32)).shape == (1, 1)
    assert roi in cache


def test_single_tile_rows_match_mask_pixels(server, calculator):
    """One tile at 1:1 scale contributes exactly one row per masked pixel."""
    roi = ROI(box(10, 10, 50, 40))

    matrix = extract_roi_features(roi, server, calculator, 1.0)

    request = calculator.requests[0]
    mask = rasterize_roi(roi, request, request.width, request.height)
    assert len(calculator.requests) == 1
    assert matrix.shape == (np.count_nonzero(mask), 4)
    assert matrix.shape[0] == 1200
    np.testing.assert_array_equal(matrix[0], [1, 2, 3, 4])


def test_rows_from_all_tiles_are_combined(server, calculator):
    """A ROI larger than one tile is assembled from every tile it overlaps."""
    matrix = extract_roi_features(ROI(box(0, 0, 100, 100)), server, calculator, 1.0)

    assert len(calculator.requests) == 4
    assert matrix.shape == (100 * 100, 4)


def test_failed_tiles_are_skipped(server, make_calculator, caplog):
    """A tile whose features can't be calculated is skipped with a warning."""
    calculator = make_calculator(fail_if=lambda request: request.x == 64)

    with caplog.at_level(logging.WARNING, logger="pixeltrainer.core.cache"):
        matrix = extract_roi_features(ROI(box(0, 0, 100, 100)), server, calculator, 1.0)

    assert matrix.shape == (64 * 100, 4)
    assert "will be skipped" in caplog.text


def test_pooled_features_use_pooled_mask(server, make_calculator):
    """Pooling halves the feature grid, so the mask is drawn at half resolution."""
    calculator = make_calculator(pool=2)

    matrix = extract_roi_features(ROI(box(0, 0, 64, 64)), server, calculator, 1.0)

    assert matrix.shape == (32 * 32, 4)


def test_roi_outside_image_contributes_nothing(server, calculator):
    """Every tile fails to read, which yields an empty matrix rather than an error."""
    matrix = extract_roi_features(ROI(box(1000, 1000, 1010, 1010)), server, calculator, 1.0)

    assert matrix.shape == (0, 4)


def test_requests_use_downsample(server, calculator):
    """Tiles are sized in full-resolution pixels."""
    extract_roi_features(ROI(box(0, 0, 100, 100)), server, calculator, 2.0)

    assert len(calculator.requests) == 1
    request = calculator.requests[0]
    assert isinstance(request, RegionRequest)
    assert (request.width, request.height, request.downsample) == (128, 128, 2.0)


@pytest.mark.parametrize("size", [50, 63, 64, 100, 128])
def test_square_outline_contributes_its_perimeter(server, calculator, size):
    """Every side of an integer-aligned outline is drawn, including sides on a tile boundary."""
    matrix = extract_roi_features(ROI(box(0, 0, size, size).exterior), server, calculator, 1.0)

    assert abs(matrix.shape[0] - 4 * size) <= 4


def test_polyline_on_tile_boundary_keeps_every_segment(server, calculator):
    """A vertical segment lying on x = 64 is drawn from the tiles to its right."""
    roi = ROI(LineString([(0, 0), (64, 0), (64, 100)]))

    matrix = extract_roi_features(roi, server, calculator, 1.0)

    assert 160 <= matrix.shape[0] <= 170
