"""Minibatch partitioning.

Pure functions: no state, no randomness.  The order of the returned
minibatches is the dataset order, which fixes the sequence of gradient
updates within an epoch.
"""

from __future__ import annotations

from collections.abc import Sequence

import torch

from mnist_classifier.data.dataset import DigitDataset
from mnist_classifier.errors import ShapeMismatch
from mnist_classifier.types import Minibatch


def partition_indices(num_samples: int, batch_size: int) -> list[range]:
    """Split ``range(num_samples)`` into consecutive chunks of ``batch_size``.

    Returns ``ceil(num_samples / batch_size)`` ranges; only the last may be
    shorter than ``batch_size``.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    if num_samples < 0:
        raise ValueError(f"num_samples must be >= 0, got {num_samples}")
    return [
        range(start, min(start + batch_size, num_samples))
        for start in range(0, num_samples, batch_size)
    ]


def _to_channels_first(images: torch.Tensor) -> torch.Tensor:
    """(B, H, W) -> (B, 1, H, W); (B, H, W, C) -> (B, C, H, W)."""
    if images.ndim == 3:
        return images.unsqueeze(1)
    if images.ndim == 4:
        return images.permute(0, 3, 1, 2)
    raise ShapeMismatch(
        f"expected (B, H, W) or (B, H, W, C) images, got {tuple(images.shape)}"
    )


def make_minibatch(
    images: torch.Tensor,
    labels: torch.Tensor,
    indices: Sequence[int],
    num_classes: int = 10,
) -> Minibatch:
    """Materialise the examples at ``indices`` into a :class:`Minibatch`.

    uint8 pixels are scaled to ``[0, 1]``; other dtypes are cast to float32
    unchanged.  Labels are one-hot encoded.  Output order follows
    ``indices``, and identical indices always give tensor-equal output.
    """
    if images.shape[0] != labels.shape[0]:
        raise ShapeMismatch(
            f"{images.shape[0]} images but {labels.shape[0]} labels"
        )
    index = torch.as_tensor(list(indices), dtype=torch.long)
    selected = images.index_select(0, index)
    if selected.dtype == torch.uint8:
        batch_images = selected.to(torch.float32) / 255.0
    else:
        batch_images = selected.to(torch.float32)
    batch_images = _to_channels_first(batch_images).contiguous()

    batch_labels = torch.nn.functional.one_hot(
        labels.index_select(0, index).long(), num_classes=num_classes
    ).to(torch.float32)
    return {"images": batch_images, "labels": batch_labels}


def partition(dataset: DigitDataset, batch_size: int) -> list[Minibatch]:
    """Partition ``dataset`` into minibatches of ``batch_size`` in dataset order."""
    plan = partition_indices(len(dataset), batch_size)
    return [
        make_minibatch(
            dataset.images, dataset.labels, idxs, num_classes=dataset.num_classes
        )
        for idxs in plan
    ]


def to_batch(dataset: DigitDataset) -> Minibatch:
    """Whole dataset as a single minibatch (used for held-out evaluation)."""
    return make_minibatch(
        dataset.images,
        dataset.labels,
        range(len(dataset)),
        num_classes=dataset.num_classes,
    )
