"""Model info callback: reports parameter counts and the run's policy."""

from __future__ import annotations

from typing import TYPE_CHECKING

import torch
from loguru import logger
from rich import box
from rich.console import Console
from rich.table import Table

from mnist_classifier.callbacks.base import ControllerCallback

if TYPE_CHECKING:
    from mnist_classifier.training.controller import TrainingController
    from mnist_classifier.training.state import TrainingResult


class ModelInfoCallback(ControllerCallback):
    """Print a summary table at run start and the outcome at run end.

    Parameter counts are only reported for ``torch.nn.Module`` models; other
    :class:`TrainableModel` implementations get the policy rows only.

    Args:
        console: Rich console to print to (a fresh stdout console if omitted).
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def on_run_start(self, controller: TrainingController) -> None:
        model = controller.model
        cfg = controller.config

        table = Table(
            title="Training Run",
            header_style="bold magenta",
            box=box.SQUARE,
            show_lines=True,
        )
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Model Class", type(model).__name__)
        if isinstance(model, torch.nn.Module):
            total_params = sum(p.numel() for p in model.parameters())
            trainable_params = sum(
                p.numel() for p in model.parameters() if p.requires_grad
            )
            table.add_row("Total Parameters", f"{total_params:,}")
            table.add_row("Trainable Parameters", f"{trainable_params:,}")
            logger.info(
                f"Model: {type(model).__name__} | "
                f"Params: {total_params:,} ({trainable_params:,} trainable)"
            )
        table.add_row("Minibatches / Epoch", str(len(controller.train_batches)))
        table.add_row("Initial Learning Rate", f"{cfg.learning_rate:g}")
        table.add_row("Target Accuracy", f"{cfg.target_accuracy:.2%}")
        table.add_row(
            "Patience / Stagnation",
            f"{cfg.plateau_patience} / {cfg.stagnation_limit} epochs",
        )
        table.add_row("Max Epochs", str(cfg.max_epochs))

        self.console.print(table)

    def on_run_end(
        self, controller: TrainingController, result: TrainingResult
    ) -> None:
        table = Table(title="Training Result", box=box.SQUARE)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Status", result.status.value)
        table.add_row("Epochs Run", str(len(result.epochs)))
        table.add_row("Best Accuracy", f"{result.state.best_accuracy:.4f}")
        table.add_row("Best First Reached", f"epoch {result.state.best_epoch}")
        table.add_row(
            "Checkpoint Epoch",
            "none written"
            if result.checkpoint_epoch is None
            else str(result.checkpoint_epoch),
        )
        table.add_row("Final Learning Rate", f"{result.state.learning_rate:g}")
        table.add_row("Checkpoint", str(controller.store.path))
        self.console.print(table)
