"""Torchvision v2 transforms for the inference request path."""

from mnist_classifier.transforms.preprocess import (
    ToFloat32Tensor,
    build_preprocess,
    preprocess,
)

__all__ = [
    "ToFloat32Tensor",
    "build_preprocess",
    "preprocess",
]
