"""Records describing a training run."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class RunStatus(StrEnum):
    RUNNING = "running"
    CONVERGED_TARGET = "converged_target"
    CONVERGED_STAGNANT = "converged_stagnant"
    EXHAUSTED = "exhausted"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING


class TrainingState(BaseModel):
    """Mutable per-run record, owned by a single controller.

    ``last_improvement_epoch`` anchors the plateau window for learning-rate
    decay and is moved forward by every decay.  ``best_epoch`` is the epoch of
    the last strict accuracy improvement and is only moved by improvements,
    so the stagnation check ignores decays taken during a plateau.
    """

    model_config = ConfigDict(validate_assignment=True)

    current_epoch: int = Field(default=0, ge=0)
    best_accuracy: float = Field(default=0.0, ge=0.0, le=1.0)
    last_improvement_epoch: int = Field(default=0, ge=0)
    best_epoch: int = Field(default=0, ge=0)
    learning_rate: float = Field(gt=0.0)
    status: RunStatus = RunStatus.RUNNING


class EpochResult(BaseModel, frozen=True):
    """What happened during one epoch."""

    epoch: int
    accuracy: float
    loss: float
    train_loss: float
    learning_rate: float
    checkpoint_written: bool
    learning_rate_decayed: bool
    status: RunStatus


class TrainingResult(BaseModel, frozen=True):
    """Outcome of :meth:`TrainingController.run`."""

    status: RunStatus
    state: TrainingState
    epochs: list[EpochResult]
    persistence_errors: list[str] = Field(default_factory=list)

    @property
    def checkpoint_epochs(self) -> list[int]:
        return [e.epoch for e in self.epochs if e.checkpoint_written]

    @property
    def checkpoint_epoch(self) -> int | None:
        """Epoch held by the stored checkpoint; later than ``best_epoch`` after ties."""
        written = self.checkpoint_epochs
        return written[-1] if written else None

    @property
    def decay_epochs(self) -> list[int]:
        return [e.epoch for e in self.epochs if e.learning_rate_decayed]
