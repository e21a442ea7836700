# -*- coding: utf-8 -*-
"""Assembles pixel classifier training data from classified annotations.

The PixelClassifierHelper turns every classified area or line annotation of an image into rows of a
training matrix: the ROI is tiled, features are calculated per tile, the pixels inside the shape are
selected, and each row is labelled with the integer assigned to the annotation's class. Per-ROI
results are cached, so after an edit only the new or changed annotations are recalculated.

Typical use:

>>> helper = PixelClassifierHelper(image_data, calculator, downsample=2.0)
>>> train_data = helper.get_train_data()
>>> if train_data is not None:
...     classifier.fit(train_data.features, train_data.targets)
"""

import logging
import threading
from collections import namedtuple
from types import MappingProxyType

import numpy as np

from .cache import FeatureCache, extract_roi_features
from .objects import REGION_CLASS, TRANSPARENT, OutputChannel
from .preprocessing import FeaturePreprocessor
from .tracking import ChangeTracker

logger = logging.getLogger(__name__)

DEFAULT_BACKGROUND_CLASSES = ("Whitespace", "Background")

TrainData = namedtuple("TrainData", ["features", "targets"])


def _same_annotations(current, previous):
    if previous is None or current.keys() != previous.keys():
        return False
    return all(set(current[path_class]) == set(previous[path_class]) for path_class in current)


class PixelClassifierHelper:
    """Builds and caches the training data for a pixel classifier.

    Every method that changes state, or touches the feature cache, runs under a single lock. The
    snapshots returned by ``get_channels``, ``get_path_class_labels``, ``get_last_training_rois`` and
    ``get_last_feature_preprocessor`` are replaced as a whole at the end of each assembly and never
    modified afterwards, so they can be read while a new assembly is running.
    """

    def __init__(
        self,
        image_data,
        calculator,
        downsample,
        background_classes=DEFAULT_BACKGROUND_CLASSES,
        preprocessor_factory=None,
    ):
        """Initialize the helper.

        Parameters:
        -----------
        image_data : ImageData or None
            Image and annotations to train from
        calculator : FeatureCalculator
            Calculates per-pixel features for a region
        downsample : float
            Downsample at which features are calculated
        background_classes : iterable of str
            Class names whose output channel is transparent
        preprocessor_factory : callable, optional
            Returns a new unfitted FeaturePreprocessor; defaults to mean-variance normalization with
            missing values replaced by 0
        """
        self._lock = threading.RLock()
        self._cache = FeatureCache()
        self._tracker = ChangeTracker(self._cache)

        self._image_data = None
        self._calculator = calculator
        self._downsample = self._check_downsample(downsample)
        self.background_classes = frozenset(background_classes)
        self.preprocessor_factory = preprocessor_factory if preprocessor_factory else FeaturePreprocessor

        self._training = None
        self._targets = None
        self._channels = ()
        self._labels = MappingProxyType({})
        self._preprocessor = None
        self._last_rois = None

        self.set_image_data(image_data)

    @staticmethod
    def _check_downsample(downsample):
        downsample = float(downsample)
        if not downsample > 0:
            raise ValueError(f"Downsample must be > 0, got {downsample}")
        return downsample

    @property
    def image_data(self):
        return self._image_data

    @property
    def feature_calculator(self):
        return self._calculator

    @property
    def downsample(self):
        return self._downsample

    @property
    def cache(self):
        return self._cache

    @property
    def is_stale(self):
        return self._tracker.stale

    def set_image_data(self, image_data):
        with self._lock:
            if image_data is self._image_data:
                return
            self._image_data = image_data
            self._tracker.attach(image_data.hierarchy if image_data is not None else None)
            self.reset_training_data()
            self._tracker.mark_stale()

    def set_feature_calculator(self, calculator):
        with self._lock:
            if calculator is self._calculator:
                return
            self._calculator = calculator
            self.reset_training_data()
            self._tracker.mark_stale()

    def set_downsample(self, downsample):
        downsample = self._check_downsample(downsample)
        with self._lock:
            if downsample == self._downsample:
                return
            self._downsample = downsample
            self.reset_training_data()
            self._tracker.mark_stale()

    @staticmethod
    def get_annotated_rois(hierarchy):
        """Group the ROIs of classified annotations by class.

        Annotations without a class, with the region meta-class, or without a ROI are ignored.

        Parameters:
        -----------
        hierarchy : AnnotationHierarchy
            Annotations to read

        Returns:
        --------
        annotated : dict
            PathClass -> list of unique ROIs, with classes in sorted order
        """
        grouped = {}
        for obj in hierarchy.get_annotated_objects():
            if obj.path_class is None or obj.path_class == REGION_CLASS or not obj.has_roi:
                continue
            grouped.setdefault(obj.path_class, {})[obj.roi] = None
        return {path_class: list(grouped[path_class]) for path_class in sorted(grouped)}

    def update_training_data(self):
        """Bring the training data up to date with the annotations.

        Returns:
        --------
        success : bool
            True if training data is available, False if there is nothing to train from (no image,
            or fewer than two classes with usable annotations)
        """
        with self._lock:
            if self._image_data is None:
                self.reset_training_data()
                return False

            # Changes reported from here on must trigger another update.
            self._tracker.mark_clean()

            annotated = self.get_annotated_rois(self._image_data.hierarchy)
            if len(annotated) < 2:
                self.reset_training_data()
                return False

            if _same_annotations(annotated, self._last_rois):
                return True

            server = self._image_data.server
            labels = {}
            channels = []
            all_features = []
            all_targets = []
            contributing = set()

            def compute(roi):
                return extract_roi_features(roi, server, self._calculator, self._downsample)

            for label, path_class in enumerate(annotated):
                color = TRANSPARENT if path_class.name in self.background_classes else path_class.color
                channels.append(OutputChannel(path_class.name, color))
                labels[label] = path_class

                for roi in annotated[path_class]:
                    if not (roi.is_area or roi.is_line):
                        logger.warning("%s is neither an area nor a line! Will be skipped...", roi)
                        continue
                    matrix = self._cache.get_or_compute(roi, compute)
                    if len(matrix) == 0:
                        continue
                    all_features.append(matrix.copy())
                    all_targets.append(np.full(len(matrix), label, dtype=np.int32))
                    contributing.add(label)

            if len(contributing) < 2:
                logger.warning(
                    "Only %d of %d classes have annotated pixels - at least 2 are needed for training",
                    len(contributing),
                    len(annotated),
                )
                self.reset_training_data()
                return False

            training = np.concatenate(all_features, axis=0)
            targets = np.concatenate(all_targets, axis=0)
            assert len(training) == len(targets), "Every training row needs exactly one label"

            training[np.isnan(training)] = 0

            preprocessor = self.preprocessor_factory()
            training = preprocessor.fit_apply(training)

            logger.info(
                "Training data: %d x %d, Target data: %d x 1",
                training.shape[0],
                training.shape[1],
                targets.shape[0],
            )

            current = set(roi for rois in annotated.values() for roi in rois)
            for roi in self._cache.rois():
                if roi not in current:
                    self._cache.invalidate(roi)

            self._training = training
            self._targets = targets
            self._labels = MappingProxyType(labels)
            self._channels = tuple(channels)
            self._preprocessor = preprocessor
            self._last_rois = MappingProxyType({path_class: tuple(rois) for path_class, rois in annotated.items()})
            return True

    def reset_training_data(self):
        """Release the training data, the last snapshot and every cached feature matrix."""
        with self._lock:
            self._training = None
            self._targets = None
            self._channels = ()
            self._labels = MappingProxyType({})
            self._preprocessor = None
            self._last_rois = None
            self._cache.clear()

    def get_train_data(self):
        """Get the training matrix and targets, updating them first if annotations changed.

        Returns:
        --------
        train_data : TrainData or None
            Copies of the (n_samples, n_features) training matrix and the (n_samples,) integer
            targets, or None if there is no training data
        """
        with self._lock:
            if self._tracker.stale:
                self.update_training_data()
            if self._training is None or self._targets is None:
                return None
            return TrainData(self._training.copy(), self._targets.copy())

    def get_channels(self):
        """Output channels of the last assembly, ordered by label."""
        return list(self._channels)

    def get_path_class_labels(self):
        """Read-only mapping of integer label to PathClass from the last assembly."""
        return self._labels

    def get_last_feature_preprocessor(self):
        return self._preprocessor

    def get_last_training_rois(self):
        """Read-only mapping of PathClass to the ROIs used in the last assembly, or None."""
        return self._last_rois

    def close(self):
        """Stop listening for annotation changes and release all training data."""
        with self._lock:
            self._tracker.detach()
            self.reset_training_data()
            self._image_data = None

    def __str__(self):
        """String representation of the helper."""
        n_rows = 0 if self._training is None else len(self._training)
        return (
            f"PixelClassifierHelper (downsample: {self._downsample:g}, classes: {len(self._labels)}, "
            f"training rows: {n_rows}, cached ROIs: {len(self._cache)})"
        )
