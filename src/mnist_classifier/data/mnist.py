"""MNIST dataset provider."""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from torchvision.datasets import MNIST

from mnist_classifier.config import DataConfig
from mnist_classifier.data.dataset import DigitDataset


def load_mnist(config: DataConfig, split: str = "train") -> DigitDataset:
    """Load one MNIST split fully into memory.

    Args:
        config: Data location and download flag.
        split: ``"train"`` (60k images) or ``"test"`` (10k images).

    Returns:
        A :class:`DigitDataset` with uint8 ``(N, 28, 28)`` images.
    """
    if split not in ("train", "test"):
        raise ValueError(f"split must be 'train' or 'test', got {split!r}")

    root = Path(config.root)
    source = MNIST(root=str(root), train=split == "train", download=config.download)
    logger.info(f"Loaded MNIST {split} split: {len(source)} images from {root}")
    return DigitDataset(source.data, source.targets, num_classes=config.num_classes)
