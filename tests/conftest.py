"""Shared pytest fixtures for mnist_classifier tests."""

from __future__ import annotations

import io
from collections.abc import Callable, Sequence
from pathlib import Path

import numpy as np
import pytest
import torch
from PIL import Image

from mnist_classifier.checkpoint.store import Checkpoint, CheckpointStore
from mnist_classifier.config import TrainingConfig
from mnist_classifier.data import DigitDataset, partition, to_batch
from mnist_classifier.types import Minibatch

NUM_CLASSES = 10


class ScriptedModel:
    """TrainableModel whose held-out accuracy follows a fixed sequence.

    Each ``forward`` call (one per epoch evaluation) returns predictions that
    are correct for exactly ``round(accuracy * N)`` of the ``N`` examples in
    ``test_labels``.  Updates only count calls.
    """

    input_shape = (1, 28, 28)

    def __init__(
        self,
        accuracies: Sequence[float],
        test_labels: torch.Tensor,
        learning_rate: float = 1e-3,
    ) -> None:
        self.accuracies = list(accuracies)
        self.test_labels = test_labels
        self._learning_rate = learning_rate
        self.forward_calls = 0
        self.update_calls = 0
        self.learning_rate_history: list[float] = []
        self.imported: list[bytes] = []

    def forward(self, images: torch.Tensor) -> torch.Tensor:
        acc = self.accuracies[min(self.forward_calls, len(self.accuracies) - 1)]
        self.forward_calls += 1
        n = self.test_labels.shape[0]
        correct = round(acc * n)
        predicted = self.test_labels.clone()
        predicted[correct:] = (predicted[correct:] + 1) % NUM_CLASSES
        return torch.nn.functional.one_hot(predicted, NUM_CLASSES).float()

    def backward_and_update(self, images: torch.Tensor, labels: torch.Tensor) -> float:
        self.update_calls += 1
        return 1.0 / self.update_calls

    @property
    def learning_rate(self) -> float:
        return self._learning_rate

    def set_learning_rate(self, rate: float) -> None:
        self._learning_rate = rate
        self.learning_rate_history.append(rate)

    def export_parameters(self) -> bytes:
        return f"params@{self.forward_calls}".encode()

    def import_parameters(self, blob: bytes) -> None:
        self.imported.append(blob)


def make_dataset(num_samples: int = 20, image_size: int = 28) -> DigitDataset:
    """Deterministic uint8 dataset with labels cycling through 0-9."""
    gen = torch.Generator().manual_seed(0)
    images = torch.randint(
        0, 256, (num_samples, image_size, image_size), dtype=torch.uint8, generator=gen
    )
    labels = torch.arange(num_samples) % NUM_CLASSES
    return DigitDataset(images, labels, num_classes=NUM_CLASSES)


@pytest.fixture()
def small_dataset() -> DigitDataset:
    return make_dataset(num_samples=20)


@pytest.fixture()
def train_batches(small_dataset: DigitDataset) -> list[Minibatch]:
    return partition(small_dataset, batch_size=8)


@pytest.fixture()
def test_batch() -> Minibatch:
    """Ten held-out examples, so scripted accuracies are multiples of 0.1."""
    return to_batch(make_dataset(num_samples=10))


@pytest.fixture()
def scripted_model(test_batch: Minibatch) -> Callable[[Sequence[float]], ScriptedModel]:
    """Factory: ``scripted_model([0.5, 0.6, ...])``."""

    def _make(accuracies: Sequence[float]) -> ScriptedModel:
        return ScriptedModel(accuracies, test_batch["labels"].argmax(dim=1))

    return _make


@pytest.fixture()
def quiet_config() -> TrainingConfig:
    """Defaults with the progress bar disabled."""
    return TrainingConfig(show_progress=False)


@pytest.fixture()
def store(tmp_path: Path) -> CheckpointStore:
    return CheckpointStore(tmp_path / "checkpoints" / "model.json")


@pytest.fixture()
def sample_checkpoint() -> Checkpoint:
    return Checkpoint(parameters=b"\x00\x01binary\xff", epoch=3, accuracy=0.75)


def png_bytes(size: tuple[int, int] = (40, 40), mode: str = "RGB") -> bytes:
    """Encode a random image as PNG."""
    channels = {"RGB": 3, "L": 1}[mode]
    shape = (size[1], size[0], channels) if channels > 1 else (size[1], size[0])
    array = np.random.randint(0, 255, shape, dtype=np.uint8)
    buffer = io.BytesIO()
    Image.fromarray(array).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def assets_dir(tmp_path: Path) -> Path:
    """Assets folder with one valid digit image and one corrupt file."""
    root = tmp_path / "assets"
    root.mkdir()
    (root / "digit.png").write_bytes(png_bytes())
    (root / "broken.png").write_bytes(b"not an image at all")
    return root
