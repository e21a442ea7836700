# -*- coding: utf-8 -*-
"""Summary statistics for assembled pixel classifier training data."""

import numpy as np
import pandas as pd


def class_distribution(helper):
    """Count training pixels and ROIs per class.

    Parameters:
    -----------
    helper : PixelClassifierHelper
        Helper to summarize; its training data is updated first if needed

    Returns:
    --------
    distribution : pandas.DataFrame
        One row per label with columns label, class, color, n_rois, n_pixels and proportion.
        Empty if there is no training data.
    """
    columns = ["label", "class", "color", "n_rois", "n_pixels", "proportion"]
    train_data = helper.get_train_data()
    if train_data is None:
        return pd.DataFrame(columns=columns)

    labels = helper.get_path_class_labels()
    channels = helper.get_channels()
    rois = helper.get_last_training_rois()
    counts = np.bincount(train_data.targets, minlength=len(labels))
    total = counts.sum()

    records = []
    for label, path_class in labels.items():
        records.append(
            {
                "label": label,
                "class": path_class.name,
                "color": channels[label].color,
                "n_rois": len(rois[path_class]),
                "n_pixels": int(counts[label]),
                "proportion": counts[label] / total if total else 0.0,
            }
        )
    return pd.DataFrame(records, columns=columns)


def feature_summary(helper, feature_names=None):
    """Describe each column of the preprocessed training matrix.

    Parameters:
    -----------
    helper : PixelClassifierHelper
        Helper to summarize
    feature_names : list of str, optional
        Names for the columns. Defaults to feature_1, feature_2, ...

    Returns:
    --------
    summary : pandas.DataFrame
        Indexed by feature name, with columns mean, std, min and max
    """
    train_data = helper.get_train_data()
    if train_data is None:
        return pd.DataFrame(columns=["mean", "std", "min", "max"])

    n_features = train_data.features.shape[1]
    if feature_names is None:
        feature_names = [f"feature_{i + 1}" for i in range(n_features)]
    if len(feature_names) != n_features:
        raise ValueError(f"Expected {n_features} feature names, got {len(feature_names)}")

    frame = pd.DataFrame(train_data.features, columns=feature_names)
    return frame.agg(["mean", "std", "min", "max"]).T
