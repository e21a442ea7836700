# -*- coding: utf-8 -*-
"""Feature calculators turn an image region into a per-pixel feature stack.

A calculator declares the input size it prefers, which drives how ROIs are tiled. Its output may be
smaller than the region it was given (e.g. after pooling); training data assembly compensates for
that when drawing masks.
"""

from dataclasses import dataclass, field

import numpy as np
from skimage.filters import gaussian, laplace, sobel
from skimage.measure import block_reduce

DEFAULT_INPUT_SIZE = 256

SMOOTHED_FEATURES = ("gaussian", "gradient_magnitude", "laplacian")


@dataclass(frozen=True)
class FeatureMetadata:
    """Describes the input a feature calculator expects."""

    input_width: int = DEFAULT_INPUT_SIZE
    input_height: int = DEFAULT_INPUT_SIZE
    feature_names: tuple = field(default_factory=tuple)


class FeatureCalculator:
    """Base class for feature calculators.

    Subclasses implement ``calculate_features``, returning an array with shape
    (height, width, n_features). Failures to read pixels are raised as IOError.
    """

    def __init__(self, metadata=None):
        self.metadata = metadata if metadata is not None else FeatureMetadata()

    def calculate_features(self, server, request):
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}({self.metadata.input_width}x{self.metadata.input_height})"


class SmoothedFeatureCalculator(FeatureCalculator):
    """Multiscale smoothed features for every image band.

    For each band and each sigma the calculator produces any of a Gaussian-smoothed value, the
    gradient magnitude of the smoothed band and its Laplacian. The output can be max-pooled to a
    coarser grid.
    """

    def __init__(self, sigmas=(1.0,), features=("gaussian",), input_size=DEFAULT_INPUT_SIZE, pool=1):
        """Initialize the calculator.

        Parameters:
        -----------
        sigmas : sequence of float
            Gaussian scales, in pixels at the requested downsample
        features : sequence of str
            Any of "gaussian", "gradient_magnitude", "laplacian"
        input_size : int
            Preferred tile width and height
        pool : int
            Max-pooling factor applied to the output; 1 disables pooling
        """
        unknown = [f for f in features if f not in SMOOTHED_FEATURES]
        if unknown:
            raise ValueError(f"Unknown features {unknown}; choose from {SMOOTHED_FEATURES}")
        if not sigmas:
            raise ValueError("At least one sigma is required")
        if pool < 1:
            raise ValueError(f"Pooling factor must be >= 1, got {pool}")

        super().__init__(FeatureMetadata(input_size, input_size))
        self.sigmas = tuple(float(s) for s in sigmas)
        self.features = tuple(features)
        self.pool = int(pool)

    def feature_names(self, n_bands):
        """Names of the output features for an image with ``n_bands`` bands."""
        return [
            f"band_{band + 1}_{feature}_sigma_{sigma:g}"
            for band in range(n_bands)
            for sigma in self.sigmas
            for feature in self.features
        ]

    def calculate_features(self, server, request):
        """Calculate features for one region.

        Parameters:
        -----------
        server : ImageServer
            Source of pixels
        request : RegionRequest
            Region to read

        Returns:
        --------
        features : numpy.ndarray
            float32 array with shape (height, width, n_features)
        """
        image = server.read_region(request).astype(np.float32)

        stack = []
        for band in image:
            for sigma in self.sigmas:
                smoothed = gaussian(band, sigma=sigma, preserve_range=True)
                for feature in self.features:
                    if feature == "gaussian":
                        stack.append(smoothed)
                    elif feature == "gradient_magnitude":
                        stack.append(sobel(smoothed))
                    else:
                        stack.append(laplace(smoothed))

        features = np.stack(stack, axis=-1).astype(np.float32)
        if self.pool > 1:
            features = block_reduce(features, block_size=(self.pool, self.pool, 1), func=np.max)
        return features
