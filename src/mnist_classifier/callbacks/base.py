"""Observer hooks invoked by the training controller."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mnist_classifier.training.controller import TrainingController
    from mnist_classifier.training.state import EpochResult, TrainingResult


class ControllerCallback:
    """Base class with no-op hooks; override the ones you need."""

    def on_run_start(self, controller: TrainingController) -> None:
        pass

    def on_epoch_end(
        self, controller: TrainingController, result: EpochResult
    ) -> None:
        pass

    def on_run_end(
        self, controller: TrainingController, result: TrainingResult
    ) -> None:
        pass
