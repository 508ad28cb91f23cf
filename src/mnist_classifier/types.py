"""Type aliases and TypedDicts for mnist_classifier inter-module contracts."""

from typing import TypedDict

import torch


class Minibatch(TypedDict):
    """A group of examples processed as one update step.

    images: Float32 tensor of shape (B, C, H, W), pixel values in [0, 1].
    labels: Float32 one-hot tensor of shape (B, num_classes).
    """

    images: torch.Tensor
    labels: torch.Tensor
