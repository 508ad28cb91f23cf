"""Accuracy and loss evaluation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import torch
from pydantic import BaseModel
from torchmetrics.functional.classification import multiclass_accuracy

from mnist_classifier.errors import ShapeMismatch
from mnist_classifier.types import Minibatch

if TYPE_CHECKING:
    from mnist_classifier.models.base import TrainableModel

# Lower bound on probabilities before taking the log.
_EPS = 1e-12


class Evaluation(BaseModel, frozen=True):
    """Held-out metrics for one epoch."""

    accuracy: float
    loss: float


def _class_indices(predictions: torch.Tensor, ground_truth: torch.Tensor) -> torch.Tensor:
    """Validate shapes and return ground truth as integer class indices."""
    if predictions.ndim != 2:
        raise ShapeMismatch(
            f"predictions must be (N, C), got {tuple(predictions.shape)}"
        )
    if ground_truth.shape[0] != predictions.shape[0]:
        raise ShapeMismatch(
            f"{predictions.shape[0]} predictions but "
            f"{ground_truth.shape[0]} ground-truth examples"
        )
    if ground_truth.ndim == 2:
        if ground_truth.shape[1] != predictions.shape[1]:
            raise ShapeMismatch(
                f"one-hot ground truth has {ground_truth.shape[1]} classes, "
                f"predictions have {predictions.shape[1]}"
            )
        return ground_truth.argmax(dim=1)
    if ground_truth.ndim == 1:
        return ground_truth.long()
    raise ShapeMismatch(
        f"ground truth must be (N,) or (N, C), got {tuple(ground_truth.shape)}"
    )


def accuracy(predictions: torch.Tensor, ground_truth: torch.Tensor) -> float:
    """Fraction of examples whose arg-max prediction equals the true class.

    ``ground_truth`` may be one-hot ``(N, C)`` or integer ``(N,)``.
    Returns 0.0 for an empty batch.
    """
    target = _class_indices(predictions, ground_truth)
    if target.numel() == 0:
        return 0.0
    score = multiclass_accuracy(
        predictions.detach().float(),
        target,
        num_classes=predictions.shape[1],
        average="micro",
        validate_args=False,
    )
    return float(score)


def cross_entropy(predictions: torch.Tensor, ground_truth: torch.Tensor) -> float:
    """Mean negative log-probability of the true class.

    ``predictions`` are probabilities (softmax outputs), not logits.
    """
    target = _class_indices(predictions, ground_truth)
    if target.numel() == 0:
        return 0.0
    probs = predictions.detach().float().gather(1, target.unsqueeze(1))
    return float(-probs.clamp_min(_EPS).log().mean())


def evaluate(model: TrainableModel, batch: Minibatch) -> Evaluation:
    """Forward ``batch`` through ``model`` without gradients and score it."""
    with torch.no_grad():
        predictions = model.forward(batch["images"])
    return Evaluation(
        accuracy=accuracy(predictions, batch["labels"]),
        loss=cross_entropy(predictions, batch["labels"]),
    )
