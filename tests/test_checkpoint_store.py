"""Tests for CheckpointStore persistence and atomic replace."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import orjson
import pytest
from pydantic import ValidationError

from mnist_classifier.checkpoint.store import Checkpoint, CheckpointStore
from mnist_classifier.errors import NoCheckpointAvailable, PersistenceError


class TestCheckpoint:
    def test_frozen(self, sample_checkpoint: Checkpoint) -> None:
        with pytest.raises(ValidationError):
            sample_checkpoint.epoch = 9  # type: ignore[misc]

    def test_accuracy_range_validated(self) -> None:
        with pytest.raises(ValidationError):
            Checkpoint(parameters=b"", epoch=0, accuracy=1.5)


class TestRoundTrip:
    def test_save_then_load(self, store: CheckpointStore, sample_checkpoint: Checkpoint) -> None:
        store.save(sample_checkpoint)
        assert store.load() == sample_checkpoint

    def test_load_from_fresh_store_instance(
        self, store: CheckpointStore, sample_checkpoint: Checkpoint
    ) -> None:
        store.save(sample_checkpoint)
        assert CheckpointStore(store.path).load() == sample_checkpoint

    def test_latest_only(self, store: CheckpointStore) -> None:
        store.save(Checkpoint(parameters=b"a", epoch=0, accuracy=0.5))
        store.save(Checkpoint(parameters=b"b", epoch=1, accuracy=0.6))
        loaded = store.load()
        assert loaded.epoch == 1
        assert loaded.parameters == b"b"
        assert [p.name for p in store.path.parent.iterdir()] == [store.path.name]

    def test_file_is_json(self, store: CheckpointStore, sample_checkpoint: Checkpoint) -> None:
        store.save(sample_checkpoint)
        record = orjson.loads(store.path.read_bytes())
        assert record["format_version"] == 1
        assert record["epoch"] == 3
        assert record["accuracy"] == 0.75


class TestMissingAndCorrupt:
    def test_empty_store(self, store: CheckpointStore) -> None:
        assert not store.exists()
        with pytest.raises(NoCheckpointAvailable):
            store.load()

    def test_missing_is_file_not_found(self, store: CheckpointStore) -> None:
        with pytest.raises(FileNotFoundError):
            store.load()

    def test_corrupt_file(self, store: CheckpointStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_bytes(b'{"format_version": 1, "epoch": ')
        with pytest.raises(PersistenceError):
            store.load()

    def test_unknown_format_version(self, store: CheckpointStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_bytes(
            orjson.dumps({"format_version": 99, "epoch": 0, "accuracy": 0.1, "parameters": ""})
        )
        with pytest.raises(PersistenceError, match="format"):
            store.load()


class TestInterruptedSave:
    def test_crash_before_replace_keeps_previous(
        self, store: CheckpointStore, sample_checkpoint: Checkpoint
    ) -> None:
        store.save(sample_checkpoint)
        newer = Checkpoint(parameters=b"newer", epoch=4, accuracy=0.8)

        with patch(
            "mnist_classifier.checkpoint.store.os.replace",
            side_effect=OSError("power cut"),
        ):
            with pytest.raises(PersistenceError, match="power cut"):
                store.save(newer)

        assert store.load() == sample_checkpoint
        assert list(store.path.parent.glob("*.tmp")) == []

    def test_crash_mid_write_keeps_previous(
        self, store: CheckpointStore, sample_checkpoint: Checkpoint
    ) -> None:
        store.save(sample_checkpoint)
        newer = Checkpoint(parameters=b"x" * 1024, epoch=5, accuracy=0.9)

        with patch(
            "mnist_classifier.checkpoint.store.os.fsync",
            side_effect=OSError("disk gone"),
        ):
            with pytest.raises(PersistenceError):
                store.save(newer)

        assert store.load() == sample_checkpoint

    def test_stray_temp_file_ignored(
        self, store: CheckpointStore, sample_checkpoint: Checkpoint
    ) -> None:
        store.save(sample_checkpoint)
        (store.path.parent / f".{store.path.name}.abc.tmp").write_bytes(b'{"epoch": 7')
        assert store.load() == sample_checkpoint

    def test_unwritable_directory(self, tmp_path: Path, sample_checkpoint: Checkpoint) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = CheckpointStore(blocker / "model.json")
        with pytest.raises(PersistenceError):
            store.save(sample_checkpoint)

    def test_first_save_failure_leaves_store_empty(
        self, store: CheckpointStore, sample_checkpoint: Checkpoint
    ) -> None:
        with patch.object(os, "replace", side_effect=OSError("nope")):
            with pytest.raises(PersistenceError):
                store.save(sample_checkpoint)
        with pytest.raises(NoCheckpointAvailable):
            store.load()
