"""In-memory labeled image dataset."""

from __future__ import annotations

import torch
from loguru import logger
from torch.utils.data import Dataset

from mnist_classifier.errors import ShapeMismatch


class DigitDataset(Dataset[tuple[torch.Tensor, int]]):
    """Ordered ``(image, label)`` pairs held fully in memory.

    Images are stored as one stacked tensor of shape ``(N, H, W)`` or
    ``(N, H, W, C)``; labels as an integer tensor of shape ``(N,)``.  Every
    image therefore shares one shape, and the constructor rejects label
    counts that do not match the image count.

    Args:
        images: Stacked image tensor, uint8 or floating point.
        labels: Integer class indices in ``[0, num_classes)``.
        num_classes: Size of the class alphabet.
    """

    def __init__(
        self,
        images: torch.Tensor,
        labels: torch.Tensor,
        num_classes: int = 10,
    ) -> None:
        if images.ndim not in (3, 4):
            raise ShapeMismatch(
                f"images must be (N, H, W) or (N, H, W, C), got {tuple(images.shape)}"
            )
        if labels.ndim != 1:
            raise ShapeMismatch(f"labels must be 1-D, got {tuple(labels.shape)}")
        if images.shape[0] != labels.shape[0]:
            raise ShapeMismatch(
                f"{images.shape[0]} images but {labels.shape[0]} labels"
            )
        if labels.numel() and (
            int(labels.min()) < 0 or int(labels.max()) >= num_classes
        ):
            raise ValueError(
                f"labels must lie in [0, {num_classes}), "
                f"got range [{int(labels.min())}, {int(labels.max())}]"
            )

        self.images = images
        self.labels = labels.long()
        self.num_classes = num_classes
        logger.debug(
            f"DigitDataset: {len(self)} samples of shape {self.image_shape}"
        )

    @property
    def image_shape(self) -> tuple[int, ...]:
        return tuple(self.images.shape[1:])

    def __len__(self) -> int:
        return int(self.labels.shape[0])

    def __getitem__(self, idx: int) -> tuple[torch.Tensor, int]:
        return self.images[idx], int(self.labels[idx])
