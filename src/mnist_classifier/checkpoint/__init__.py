"""Durable storage of the best model snapshot."""

from mnist_classifier.checkpoint.store import Checkpoint, CheckpointStore

__all__ = [
    "Checkpoint",
    "CheckpointStore",
]
