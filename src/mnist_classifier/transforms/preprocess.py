"""Image preprocessing: decoded PIL image -> model input tensor."""

from __future__ import annotations

from typing import Any

import torch
from PIL import Image
from torchvision.transforms import v2


class ToFloat32Tensor(v2.Transform):
    """Convert PIL images to float32 tensors scaled to ``[0.0, 1.0]``.

    ``v2.ToImage`` followed by ``v2.ToDtype(torch.float32, scale=True)``,
    i.e. the same scaling :func:`mnist_classifier.data.make_minibatch`
    applies to uint8 training images.
    """

    def __init__(self) -> None:
        super().__init__()
        self._to_image = v2.ToImage()
        self._to_dtype = v2.ToDtype(torch.float32, scale=True)

    def forward(self, *inputs: Any) -> Any:
        outputs = self._to_image(*inputs)
        if not isinstance(outputs, tuple):
            outputs = (outputs,)
        return self._to_dtype(*outputs)


def build_preprocess(image_size: int = 28) -> v2.Compose:
    """Resize to ``image_size`` x ``image_size`` and convert to float32."""
    return v2.Compose(
        [
            v2.Resize((image_size, image_size), antialias=True),
            ToFloat32Tensor(),
        ]
    )


def preprocess(image: Image.Image, image_size: int = 28) -> torch.Tensor:
    """Grayscale ``(1, image_size, image_size)`` float32 tensor from ``image``."""
    tensor = build_preprocess(image_size)(image.convert("L"))
    return torch.as_tensor(tensor)
