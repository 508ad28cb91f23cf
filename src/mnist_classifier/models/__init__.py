"""Trainable model implementations."""

from mnist_classifier.models.base import TrainableModel
from mnist_classifier.models.conv_net import ConvNetClassifier

__all__ = [
    "ConvNetClassifier",
    "TrainableModel",
]
