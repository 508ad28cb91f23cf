"""Checkpoint persistence with atomic replace.

A checkpoint file is UTF-8 JSON written with orjson::

    {"format_version": 1, "epoch": 3, "accuracy": 0.991, "parameters": "<base64>"}

``parameters`` is the model's opaque blob.  :meth:`CheckpointStore.save`
writes a sibling temp file, fsyncs it and ``os.replace``s it over the target,
so a reader in another process sees either the old file or the new one.
"""

from __future__ import annotations

import base64
import binascii
import os
import tempfile
from pathlib import Path

import orjson
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from mnist_classifier.errors import NoCheckpointAvailable, PersistenceError

FORMAT_VERSION = 1


class Checkpoint(BaseModel, frozen=True):
    """Immutable snapshot of model parameters at one epoch."""

    parameters: bytes
    epoch: int = Field(ge=0)
    accuracy: float = Field(ge=0.0, le=1.0)


class CheckpointStore:
    """Latest-only checkpoint storage backed by a single file.

    Args:
        path: Checkpoint file location.  Parent directories are created on
            the first save.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, checkpoint: Checkpoint) -> Path:
        """Atomically replace the stored checkpoint.

        Raises:
            PersistenceError: the file could not be written.  The previously
                stored checkpoint, if any, is left untouched.
        """
        data = orjson.dumps(
            {
                "format_version": FORMAT_VERSION,
                "epoch": checkpoint.epoch,
                "accuracy": checkpoint.accuracy,
                "parameters": base64.b64encode(checkpoint.parameters).decode("ascii"),
            }
        )
        tmp_path: Path | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise PersistenceError(
                f"Failed to write checkpoint to {self.path}: {e}"
            ) from e
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)

        logger.debug(
            f"Wrote checkpoint epoch={checkpoint.epoch} "
            f"accuracy={checkpoint.accuracy:.4f} to {self.path}"
        )
        return self.path

    def load(self) -> Checkpoint:
        """Read the stored checkpoint.

        Raises:
            NoCheckpointAvailable: nothing has been saved at ``path``.
            PersistenceError: the file exists but cannot be decoded.
        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError as e:
            raise NoCheckpointAvailable(f"No checkpoint at {self.path}") from e
        except OSError as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}") from e

        try:
            record = orjson.loads(raw)
            if record.get("format_version") != FORMAT_VERSION:
                raise PersistenceError(
                    f"Unsupported checkpoint format in {self.path}: "
                    f"{record.get('format_version')!r}"
                )
            return Checkpoint(
                parameters=base64.b64decode(record["parameters"], validate=True),
                epoch=record["epoch"],
                accuracy=record["accuracy"],
            )
        except PersistenceError:
            raise
        except (
            orjson.JSONDecodeError,
            binascii.Error,
            KeyError,
            TypeError,
            AttributeError,
            ValidationError,
        ) as e:
            raise PersistenceError(f"Corrupt checkpoint at {self.path}: {e}") from e
