# -*- coding: utf-8 -*-
# pixeltrainer/__init__.py

"""
PixelTrainer: Training data assembly for pixel classifiers
==========================================================

PixelTrainer turns classified vector annotations drawn on a large image into a labelled
per-pixel feature matrix that a statistical classifier can be trained on.

Key features:
- Tiling of arbitrarily large annotations into feature calculation windows
- Rasterization of area and line annotations at the resolution of the features
- Per-annotation feature caching with explicit, event-driven invalidation
- Deterministic class labels and mean-variance preprocessing
- Integration with raster (rasterio) and vector (geopandas) data formats
"""

__version__ = "0.1.0"

from .core.objects import REGION_CLASS, ROI, TRANSPARENT, AnnotationObject, OutputChannel, PathClass, RegionRequest
from .core.hierarchy import AnnotationHierarchy, HierarchyEvent
from .core.tiling import tile_roi, tile_size
from .core.masks import mask_downsample, rasterize_roi, select_masked_rows
from .core.features import FeatureCalculator, FeatureMetadata, SmoothedFeatureCalculator
from .core.cache import FeatureCache, extract_roi_features
from .core.preprocessing import FeaturePreprocessor
from .core.tracking import ChangeTracker
from .core.helper import DEFAULT_BACKGROUND_CLASSES, PixelClassifierHelper, TrainData
from .core.classifier import SupervisedClassifier

from .io.raster import ArrayImageServer, ImageData, ImageServer, RasterioImageServer, read_raster
from .io.vector import annotations_from_geodataframe, hierarchy_to_geodataframe, read_annotations, write_annotations

from .stats.training import class_distribution, feature_summary

from .utils.helpers import create_sample_data, default_class_color, memory_usage
