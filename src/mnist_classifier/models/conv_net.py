"""Small convolutional digit classifier."""

from __future__ import annotations

import io
import math
from typing import Any

import lightning as L
import torch
from torch import nn

from mnist_classifier.errors import TrainingDiverged
from mnist_classifier.types import Minibatch
from mnist_classifier.utils.hydra import register


@register(name="conv_net", num_classes=10, learning_rate=1e-3)
class ConvNetClassifier(L.LightningModule):
    """Three 3x3 conv blocks with max pooling, then a linear head and softmax.

    28x28 grayscale input is pooled down to 3x3x32 = 288 features.  The
    module owns its Adam optimiser so a minibatch update is a single call to
    :meth:`backward_and_update`; ``training_step``/``configure_optimizers``
    keep it usable with a Lightning ``Trainer`` as well.

    Args:
        num_classes: Size of the output layer.
        learning_rate: Initial Adam learning rate.
        in_channels: Image channels (1 for MNIST).
        image_size: Square input size in pixels.
    """

    def __init__(
        self,
        num_classes: int = 10,
        learning_rate: float = 1e-3,
        in_channels: int = 1,
        image_size: int = 28,
    ) -> None:
        super().__init__()
        self.save_hyperparameters()
        self.input_shape = (in_channels, image_size, image_size)

        self.features = nn.Sequential(
            nn.Conv2d(in_channels, 16, kernel_size=3, padding=1),
            nn.ReLU(),
            nn.MaxPool2d(2),
            nn.Conv2d(16, 32, kernel_size=3, padding=1),
            nn.ReLU(),
            nn.MaxPool2d(2),
            nn.Conv2d(32, 32, kernel_size=3, padding=1),
            nn.ReLU(),
            nn.MaxPool2d(2),
        )
        pooled = image_size // 8
        self.head = nn.Linear(32 * pooled * pooled, num_classes)
        self.loss_fn = nn.CrossEntropyLoss()
        self.optimizer = self.configure_optimizers()

    def logits(self, images: torch.Tensor) -> torch.Tensor:
        return self.head(self.features(images).flatten(1))

    def forward(self, images: torch.Tensor) -> torch.Tensor:
        return torch.softmax(self.logits(images), dim=1)

    def training_step(self, batch: Minibatch, batch_idx: int) -> torch.Tensor:
        # One-hot targets are accepted by CrossEntropyLoss as class probabilities.
        loss: torch.Tensor = self.loss_fn(self.logits(batch["images"]), batch["labels"])
        return loss

    def configure_optimizers(self) -> torch.optim.Optimizer:
        return torch.optim.Adam(self.parameters(), lr=self.hparams["learning_rate"])

    def backward_and_update(
        self, images: torch.Tensor, labels: torch.Tensor
    ) -> float:
        self.train()
        self.optimizer.zero_grad()
        loss = self.training_step({"images": images, "labels": labels}, 0)
        value = float(loss.detach())
        if not math.isfinite(value):
            raise TrainingDiverged(f"non-finite training loss: {value}")
        loss.backward()
        self.optimizer.step()
        self.eval()
        return value

    @property
    def learning_rate(self) -> float:
        return float(self.optimizer.param_groups[0]["lr"])

    def set_learning_rate(self, rate: float) -> None:
        if rate <= 0:
            raise ValueError(f"learning rate must be positive, got {rate}")
        for group in self.optimizer.param_groups:
            group["lr"] = rate

    def export_parameters(self) -> bytes:
        """Serialise the ``state_dict`` (CPU tensors) with ``torch.save``."""
        state = {k: v.detach().cpu() for k, v in self.state_dict().items()}
        buffer = io.BytesIO()
        torch.save(state, buffer)
        return buffer.getvalue()

    def import_parameters(self, blob: bytes) -> None:
        state: dict[str, Any] = torch.load(
            io.BytesIO(blob), map_location="cpu", weights_only=True
        )
        self.load_state_dict(state)
