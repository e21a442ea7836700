# -*- coding: utf-8 -*-
"""Caches the masked feature matrix extracted for each training ROI.

Extracting features is by far the most expensive step of assembling training data, so the result for
each ROI is kept until the ROI is removed or edited, or the image, feature calculator or downsample
changes. Eviction is always explicit; nothing depends on garbage collection.
"""

import logging
import threading

import numpy as np

from .masks import rasterize_roi, select_masked_rows
from .tiling import tile_roi

logger = logging.getLogger(__name__)


def _release(matrix):
    # Freeze the buffer so a stale reference held elsewhere can't be written to.
    if matrix is not None:
        matrix.setflags(write=False)


class FeatureCache:
    """Maps ROIs to their extracted feature matrices.

    The cache owns the matrices it stores and keeps them read-only. Callers that need to modify
    a cached matrix must copy it first.
    """

    def __init__(self):
        self._entries = {}
        self._pending = set()
        self._lock = threading.RLock()

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def __contains__(self, roi):
        with self._lock:
            return roi in self._entries

    def rois(self):
        with self._lock:
            return list(self._entries)

    def get(self, roi):
        with self._lock:
            return self._entries.get(roi)

    def put(self, roi, matrix):
        """Store a matrix for a ROI, releasing any matrix previously stored for it."""
        matrix.setflags(write=False)
        with self._lock:
            _release(self._entries.get(roi))
            self._entries[roi] = matrix
        return matrix

    def get_or_compute(self, roi, compute):
        """Return the cached matrix for a ROI, computing and storing it on a miss.

        The lock is not held while computing, so invalidation from another thread never waits for
        feature extraction. A ROI invalidated while it was being computed is returned but not stored.

        Parameters:
        -----------
        roi : ROI
            Cache key
        compute : callable
            Called with the ROI on a miss; must return a 2-D numpy array

        Returns:
        --------
        matrix : numpy.ndarray
            Read-only feature matrix
        """
        with self._lock:
            matrix = self._entries.get(roi)
            if matrix is not None:
                return matrix
            self._pending.add(roi)
        logger.debug("Feature cache miss for %s", roi)

        try:
            matrix = compute(roi)
        except BaseException:
            with self._lock:
                self._pending.discard(roi)
            raise

        with self._lock:
            if roi in self._pending:
                self._pending.discard(roi)
                return self.put(roi, matrix)
        logger.debug("%s was invalidated while its features were calculated", roi)
        matrix.setflags(write=False)
        return matrix

    def invalidate(self, roi):
        """Drop the entry for one ROI. Returns True if there was one."""
        with self._lock:
            self._pending.discard(roi)
            matrix = self._entries.pop(roi, None)
        _release(matrix)
        return matrix is not None

    def clear(self):
        with self._lock:
            entries, self._entries = self._entries, {}
            self._pending.clear()
        for matrix in entries.values():
            _release(matrix)
        if entries:
            logger.debug("Released %d cached feature matrices", len(entries))


def extract_roi_features(roi, server, calculator, downsample):
    """Calculate the feature vectors of all pixels covered by a ROI.

    The ROI's bounding box is tiled to the calculator's input size. Each tile's features are masked
    by the ROI shape, and the selected rows of all tiles are stacked in tile order. Tiles whose features
    cannot be calculated are skipped with a warning.

    Parameters:
    -----------
    roi : ROI
        Area or line ROI
    server : ImageServer
        Source of pixels
    calculator : FeatureCalculator
        Feature calculator
    downsample : float
        Downsample at which features are calculated

    Returns:
    --------
    matrix : numpy.ndarray
        float32 array with shape (n_pixels, n_features); may have zero rows
    """
    metadata = calculator.metadata
    requests = tile_roi(roi, server.path, metadata.input_width, metadata.input_height, downsample)

    rows = []
    n_features = len(metadata.feature_names)
    for request in requests:
        try:
            features = calculator.calculate_features(server, request)
        except IOError as e:
            logger.warning("Unable to calculate features for %s - will be skipped (%s)", request, e)
            continue

        result_height, result_width = features.shape[:2]
        mask = rasterize_roi(roi, request, result_width, result_height)
        rows.append(select_masked_rows(features, mask))
        n_features = features.shape[2]

    if not rows:
        return np.empty((0, n_features), dtype=np.float32)
    return np.concatenate(rows, axis=0).astype(np.float32, copy=False)
