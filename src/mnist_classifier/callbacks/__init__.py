"""Training controller callbacks for mnist_classifier."""

from mnist_classifier.callbacks.base import ControllerCallback
from mnist_classifier.callbacks.model_info import ModelInfoCallback
from mnist_classifier.callbacks.plotting import TrainingHistoryCallback

__all__ = [
    "ControllerCallback",
    "ModelInfoCallback",
    "TrainingHistoryCallback",
]
