"""Training history callback: saves accuracy, loss and learning-rate PNGs."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import matplotlib
import matplotlib.pyplot as plt
from loguru import logger

from mnist_classifier.callbacks.base import ControllerCallback

if TYPE_CHECKING:
    from mnist_classifier.training.controller import TrainingController
    from mnist_classifier.training.state import EpochResult


class TrainingHistoryCallback(ControllerCallback):
    """Plot and save the run's curves after every epoch.

    Overwrites two PNG files in ``<output_dir>/training_history``:
    - ``accuracy_history.png``: test accuracy, checkpoint epochs marked
    - ``loss_history.png``: train loss vs test loss, learning rate on a log
      scale on a twin axis

    Plotting failures are logged and never interrupt training.

    Args:
        output_dir: Root directory for saved plots.
    """

    def __init__(self, output_dir: str = "outputs") -> None:
        self.output_dir = Path(output_dir) / "training_history"
        self.history: list[EpochResult] = []

    def on_run_start(self, controller: TrainingController) -> None:
        self.history = []

    def on_epoch_end(
        self, controller: TrainingController, result: EpochResult
    ) -> None:
        self.history.append(result)
        try:
            self._plot_metrics()
        except Exception as e:
            logger.error(f"Failed to plot training history: {e}")

    def _plot_metrics(self) -> None:
        matplotlib.use("Agg")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        epochs = [r.epoch for r in self.history]

        # --- Accuracy plot ---
        fig, ax = plt.subplots(figsize=(10, 6))
        ax.plot(epochs, [r.accuracy for r in self.history], label="Test Accuracy", marker="o")
        saved = [r for r in self.history if r.checkpoint_written]
        if saved:
            ax.scatter(
                [r.epoch for r in saved],
                [r.accuracy for r in saved],
                label="Checkpoint",
                marker="*",
                s=120,
                color="tab:green",
                zorder=3,
            )
        ax.set_title("Test Accuracy")
        ax.set_xlabel("Epoch")
        ax.set_ylabel("Accuracy")
        ax.legend()
        ax.grid(True, linestyle="--", alpha=0.7)
        fig.tight_layout()
        fig.savefig(self.output_dir / "accuracy_history.png", dpi=150)
        plt.close(fig)

        # --- Loss + learning rate plot ---
        fig, ax = plt.subplots(figsize=(10, 6))
        ax.plot(epochs, [r.train_loss for r in self.history], label="Train Loss", marker="o")
        ax.plot(epochs, [r.loss for r in self.history], label="Test Loss", marker="s")
        ax.set_xlabel("Epoch")
        ax.set_ylabel("Loss")
        ax.grid(True, linestyle="--", alpha=0.7)
        lr_ax = ax.twinx()
        lr_ax.step(
            epochs,
            [r.learning_rate for r in self.history],
            where="post",
            color="tab:gray",
            label="Learning Rate",
        )
        lr_ax.set_yscale("log")
        lr_ax.set_ylabel("Learning Rate")
        handles, labels = ax.get_legend_handles_labels()
        lr_handles, lr_labels = lr_ax.get_legend_handles_labels()
        ax.legend(handles + lr_handles, labels + lr_labels)
        ax.set_title("Loss and Learning Rate")
        fig.tight_layout()
        fig.savefig(self.output_dir / "loss_history.png", dpi=150)
        plt.close(fig)

        logger.debug(f"Training history plots updated in {self.output_dir}")
