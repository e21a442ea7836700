# -*- coding: utf-8 -*-
"""Numeric preprocessing applied to training features before a classifier sees them.

The preprocessor is fitted once on the assembled training matrix and then reused unchanged for new
pixels at prediction time, so training and inference see identically scaled features.
"""

import numpy as np
from sklearn.decomposition import PCA
from sklearn.exceptions import NotFittedError
from sklearn.impute import SimpleImputer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import MinMaxScaler, StandardScaler
from sklearn.utils.validation import check_is_fitted

NORMALIZATIONS = ("none", "mean_variance", "min_max")


class FeaturePreprocessor:
    """Missing-value replacement, normalization and optional PCA, backed by a scikit-learn pipeline."""

    def __init__(self, normalization="mean_variance", pca=None, missing_value=0.0):
        """Initialize the preprocessor.

        Parameters:
        -----------
        normalization : str
            "mean_variance" (standardize each feature), "min_max" (rescale to [0, 1]) or "none"
        pca : float or int, optional
            Retained variance fraction (0 < pca < 1) or number of components. None disables PCA.
        missing_value : float
            Value that replaces NaN entries before anything is fitted
        """
        if normalization not in NORMALIZATIONS:
            raise ValueError(f"Unknown normalization '{normalization}'; choose from {NORMALIZATIONS}")
        self.normalization = normalization
        self.pca = pca
        self.missing_value = float(missing_value)
        self.pipeline = self._build_pipeline()

    def _build_pipeline(self):
        steps = [
            (
                "impute",
                SimpleImputer(
                    missing_values=np.nan,
                    strategy="constant",
                    fill_value=self.missing_value,
                    keep_empty_features=True,
                ),
            )
        ]
        if self.normalization == "mean_variance":
            steps.append(("normalize", StandardScaler()))
        elif self.normalization == "min_max":
            steps.append(("normalize", MinMaxScaler()))
        if self.pca is not None:
            steps.append(("pca", PCA(n_components=self.pca)))
        return Pipeline(steps)

    @property
    def is_fitted(self):
        try:
            check_is_fitted(self.pipeline.steps[-1][1])
        except NotFittedError:
            return False
        return True

    def _scaler(self):
        if "normalize" not in self.pipeline.named_steps or not self.is_fitted:
            return None
        return self.pipeline.named_steps["normalize"]

    @property
    def means(self):
        """Per-feature means subtracted by mean-variance normalization, or None."""
        scaler = self._scaler()
        return getattr(scaler, "mean_", None)

    @property
    def scales(self):
        """Per-feature scale factors of the fitted normalization, or None."""
        scaler = self._scaler()
        return getattr(scaler, "scale_", None)

    @property
    def n_features_in(self):
        return self.pipeline.named_steps["impute"].n_features_in_ if self.is_fitted else None

    @property
    def n_features_out(self):
        if not self.is_fitted:
            return None
        if self.pca is not None:
            return int(self.pipeline.named_steps["pca"].n_components_)
        return self.n_features_in

    def fit_apply(self, matrix):
        """Fit the preprocessing to a training matrix and apply it.

        Parameters:
        -----------
        matrix : numpy.ndarray
            Training matrix with shape (n_samples, n_features). Overwritten with the result when
            the number of features is unchanged.

        Returns:
        --------
        transformed : numpy.ndarray
            The preprocessed matrix (the same object as ``matrix`` unless PCA changed its width)
        """
        transformed = self.pipeline.fit_transform(matrix)
        if transformed.shape == matrix.shape and matrix.flags.writeable:
            matrix[...] = transformed
            return matrix
        return transformed.astype(matrix.dtype, copy=False)

    def apply(self, features):
        """Apply the fitted preprocessing to new feature vectors.

        Parameters:
        -----------
        features : numpy.ndarray
            One feature vector, or an array with shape (n_samples, n_features)

        Returns:
        --------
        transformed : numpy.ndarray
            Preprocessed features with the same number of dimensions as the input
        """
        if not self.is_fitted:
            raise RuntimeError("FeaturePreprocessor must be fitted before it can be applied")
        features = np.asarray(features, dtype=np.float64)
        if features.ndim == 1:
            return self.pipeline.transform(features.reshape(1, -1))[0]
        return self.pipeline.transform(features)

    def __repr__(self):
        return f"FeaturePreprocessor(normalization='{self.normalization}', pca={self.pca}, missing_value={self.missing_value:g})"
