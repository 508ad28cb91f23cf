"""Data pipeline for mnist_classifier."""

from mnist_classifier.data.batcher import (
    make_minibatch,
    partition,
    partition_indices,
    to_batch,
)
from mnist_classifier.data.dataset import DigitDataset
from mnist_classifier.data.mnist import load_mnist

__all__ = [
    "DigitDataset",
    "load_mnist",
    "make_minibatch",
    "partition",
    "partition_indices",
    "to_batch",
]
