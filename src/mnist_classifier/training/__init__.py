"""Training control loop: state, epoch policy and controller."""

from mnist_classifier.training.controller import TrainingController
from mnist_classifier.training.policy import EpochDecision, apply_epoch_policy
from mnist_classifier.training.state import (
    EpochResult,
    RunStatus,
    TrainingResult,
    TrainingState,
)

__all__ = [
    "EpochDecision",
    "EpochResult",
    "RunStatus",
    "TrainingController",
    "TrainingResult",
    "TrainingState",
    "apply_epoch_policy",
]
