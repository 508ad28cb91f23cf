"""Capability interface every trainable model must satisfy."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import torch


@runtime_checkable
class TrainableModel(Protocol):
    """What the training controller and inference gateway need from a model.

    The controller never looks at the architecture: it feeds minibatches to
    :meth:`backward_and_update`, scores :meth:`forward` outputs, adjusts the
    learning rate and snapshots parameters as an opaque blob.
    """

    input_shape: tuple[int, ...]

    def forward(self, images: torch.Tensor) -> torch.Tensor:
        """Per-class probabilities of shape (B, num_classes)."""
        ...

    def backward_and_update(
        self, images: torch.Tensor, labels: torch.Tensor
    ) -> float:
        """One optimiser step on a minibatch; returns the training loss.

        Raises:
            TrainingDiverged: the loss is not finite.
        """
        ...

    @property
    def learning_rate(self) -> float: ...

    def set_learning_rate(self, rate: float) -> None: ...

    def export_parameters(self) -> bytes: ...

    def import_parameters(self, blob: bytes) -> None: ...
