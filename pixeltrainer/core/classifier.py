# -*- coding: utf-8 -*-
"""Trains scikit-learn classifiers on assembled pixel training data and predicts labels for new regions."""

import logging

from sklearn.ensemble import RandomForestClassifier
from sklearn.neighbors import KNeighborsClassifier
from sklearn.svm import SVC

logger = logging.getLogger(__name__)

CLASSIFIER_TYPES = {
    "Random Forest": RandomForestClassifier,
    "SVC": SVC,
    "KNN": KNeighborsClassifier,
}


class SupervisedClassifier:
    """A pixel classifier trained from a PixelClassifierHelper."""

    def __init__(self, name=None, classifier_type="Random Forest", classifier_params=None):
        """Initialize the classifier.

        Parameters:
        -----------
        name : str, optional
            Name of the classifier
        classifier_type : str
            "Random Forest", "SVC" (Support Vector Classifier) or "KNN" (k-nearest neighbours)
        classifier_params : dict, optional
            Additional parameters relayed to the scikit-learn estimator
        """
        if classifier_type not in CLASSIFIER_TYPES:
            raise ValueError(f"Unknown classifier type '{classifier_type}'; choose from {list(CLASSIFIER_TYPES)}")
        self.classifier_type = classifier_type
        self.classifier_params = classifier_params if classifier_params is not None else {}
        self.name = name if name else "Pixel_Classification"

        self.classifier = None
        self.calculator = None
        self.downsample = None
        self.preprocessor = None
        self.channels = []
        self.path_class_labels = {}

    @property
    def is_trained(self):
        return self.classifier is not None

    def train(self, helper):
        """Fit the classifier on the helper's current training data.

        The helper's feature calculator, downsample, preprocessor and label mapping are kept so that
        predictions use exactly the same features.

        Parameters:
        -----------
        helper : PixelClassifierHelper
            Source of training data

        Returns:
        --------
        trained : bool
            False if the helper has no training data
        """
        train_data = helper.get_train_data()
        if train_data is None:
            logger.warning("No training data available for '%s'", self.name)
            return False

        classifier = CLASSIFIER_TYPES[self.classifier_type](**self.classifier_params)
        classifier.fit(train_data.features, train_data.targets)

        if getattr(classifier, "oob_score", False):
            logger.info("OOB Score: %.4f", classifier.oob_score_)

        self.classifier = classifier
        self.calculator = helper.feature_calculator
        self.downsample = helper.downsample
        self.preprocessor = helper.get_last_feature_preprocessor()
        self.channels = helper.get_channels()
        self.path_class_labels = dict(helper.get_path_class_labels())
        return True

    def predict_region(self, server, request):
        """Predict a class label for every pixel of a region's feature grid.

        Parameters:
        -----------
        server : ImageServer
            Source of pixels
        request : RegionRequest
            Region to classify; its downsample should match the training downsample

        Returns:
        --------
        labels : numpy.ndarray
            Integer labels with shape (height, width) of the feature result; use
            ``path_class_labels`` to map them back to classes
        """
        if not self.is_trained:
            raise RuntimeError(f"Classifier '{self.name}' has not been trained")

        features = self.calculator.calculate_features(server, request)
        height, width, n_features = features.shape
        x = features.reshape(height * width, n_features)
        if self.preprocessor is not None:
            x = self.preprocessor.apply(x)

        predictions = self.classifier.predict(x)
        return predictions.reshape(height, width)
