"""Inference gateway: one checkpoint, one image per request."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlparse

import requests
import torch
from loguru import logger
from PIL import Image, UnidentifiedImageError

from mnist_classifier.checkpoint.store import Checkpoint, CheckpointStore
from mnist_classifier.config import ServingConfig
from mnist_classifier.errors import InvalidInput, ShapeMismatch
from mnist_classifier.models.base import TrainableModel
from mnist_classifier.schemas.response import (
    BarChart,
    GatewayResponse,
    InvalidInputResponse,
    PlaceholderResponse,
    PredictionResponse,
)
from mnist_classifier.transforms.preprocess import preprocess


def is_url(value: str) -> bool:
    """Whether ``value`` should be fetched over HTTP rather than read locally."""
    return value.lower().startswith("http")


class InferenceGateway:
    """Serve predictions from a checkpoint loaded once at construction.

    Use :meth:`from_store` at process start; a missing checkpoint raises
    :class:`NoCheckpointAvailable` there, since there is nothing to serve.
    Afterwards every request is independent: bad input becomes an
    :class:`InvalidInputResponse` and the gateway keeps running.

    Args:
        model: A fresh model instance; the checkpoint's parameters are
            imported into it.
        checkpoint: The snapshot to serve.
        config: Assets directory, input size and allowed extensions.
        session: HTTP session used for remote images.
    """

    def __init__(
        self,
        model: TrainableModel,
        checkpoint: Checkpoint,
        config: ServingConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.model = model
        self.checkpoint = checkpoint
        self.config = config or ServingConfig()
        self.session = session or requests.Session()
        self.assets_dir = Path(self.config.assets_dir)

        model.import_parameters(checkpoint.parameters)
        if isinstance(model, torch.nn.Module):
            model.eval()
        logger.info(
            f"Serving checkpoint from epoch {checkpoint.epoch} "
            f"(test accuracy {checkpoint.accuracy:.4f})"
        )

    @classmethod
    def from_store(
        cls,
        store: CheckpointStore,
        model: TrainableModel,
        config: ServingConfig | None = None,
        session: requests.Session | None = None,
    ) -> InferenceGateway:
        return cls(model, store.load(), config=config, session=session)

    def predict(self, image: torch.Tensor) -> list[float]:
        """Class probabilities for one preprocessed image.

        Accepts the model's ``input_shape`` with or without a leading batch
        dimension of 1.

        Raises:
            ShapeMismatch: any other shape.
        """
        expected = tuple(self.model.input_shape)
        shape = tuple(image.shape)
        if shape == expected:
            batch = image.unsqueeze(0)
        elif shape == (1, *expected):
            batch = image
        else:
            raise ShapeMismatch(f"expected image of shape {expected}, got {shape}")

        with torch.no_grad():
            probs = self.model.forward(batch.to(torch.float32))[0]
        return [float(p) for p in probs]

    def handle_request(self, value: str | None) -> GatewayResponse:
        """Answer one request naming a local image, an image URL or nothing."""
        if value is None or not value.strip():
            return PlaceholderResponse()
        value = value.strip()

        try:
            image = self._open_image(value)
        except InvalidInput as e:
            logger.warning(f"Rejected request {value!r}: {e}")
            return InvalidInputResponse(message=str(e))

        values = self.predict(preprocess(image, self.config.image_size))
        logger.debug(f"{value}: {values}")
        return PredictionResponse(
            source=value,
            epoch=self.checkpoint.epoch,
            accuracy=self.checkpoint.accuracy,
            chart=BarChart(categories=list(range(len(values))), values=values),
            predicted_class=max(range(len(values)), key=values.__getitem__),
        )

    def _open_image(self, value: str) -> Image.Image:
        if is_url(value):
            return self._decode(self._download(value), value)

        if not value.lower().endswith(self.config.allowed_extensions):
            raise InvalidInput(
                f"Unsupported file type: {value} "
                f"(expected one of {', '.join(self.config.allowed_extensions)})"
            )
        path = Path(value)
        if not path.is_absolute():
            path = self.assets_dir / path
        if not path.is_file():
            raise InvalidInput(f"Invalid file name: {value}")
        return self._decode(path, value)

    def _download(self, url: str) -> Path:
        """Fetch ``url`` into the assets directory, replacing the previous download."""
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidInput(f"Malformed URL: {url}")
        try:
            resp = self.session.get(url, timeout=self.config.download_timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise InvalidInput(f"Failed to fetch {url}: {e}") from e
        target = self.assets_dir / self.config.download_name
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(resp.content)
        except OSError as e:
            raise InvalidInput(f"Cannot store download from {url}: {e}") from e
        return target

    @staticmethod
    def _decode(source: Path, value: str) -> Image.Image:
        try:
            with Image.open(source) as img:
                img.load()
                return img.copy()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise InvalidInput(f"Unreadable image: {value}") from e
