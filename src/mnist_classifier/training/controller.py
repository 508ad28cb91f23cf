"""Epoch loop driving a trainable model to convergence."""

from __future__ import annotations

import math
from collections.abc import Sequence

from loguru import logger
from tqdm import tqdm

from mnist_classifier.callbacks.base import ControllerCallback
from mnist_classifier.checkpoint.store import Checkpoint, CheckpointStore
from mnist_classifier.config import TrainingConfig
from mnist_classifier.errors import PersistenceError, TrainingDiverged
from mnist_classifier.metrics import evaluate
from mnist_classifier.models.base import TrainableModel
from mnist_classifier.training.policy import apply_epoch_policy
from mnist_classifier.training.state import (
    EpochResult,
    RunStatus,
    TrainingResult,
    TrainingState,
)
from mnist_classifier.types import Minibatch


class TrainingController:
    """Train, evaluate and checkpoint epoch by epoch until a terminal state.

    Each epoch runs every minibatch through ``model.backward_and_update`` in
    the given order, scores the model on ``test_batch`` and hands that
    accuracy to :func:`apply_epoch_policy`.  The controller then carries out
    the decided side effects: writing a checkpoint through ``store`` and
    pushing a decayed learning rate to the model.

    A failed checkpoint write is logged and recorded on the result; training
    continues.  A diverged update raises :class:`TrainingDiverged` and ends
    the run without writing a checkpoint for that epoch.

    Args:
        model: Any object satisfying :class:`TrainableModel`.
        train_batches: Minibatches in update order (see ``data.partition``).
        test_batch: Held-out examples, the only acceptance signal.
        store: Where checkpoints go.
        config: Policy thresholds and the initial learning rate.
        callbacks: Observers notified at run start, epoch end and run end.
    """

    def __init__(
        self,
        model: TrainableModel,
        train_batches: Sequence[Minibatch],
        test_batch: Minibatch,
        store: CheckpointStore,
        config: TrainingConfig | None = None,
        callbacks: Sequence[ControllerCallback] = (),
    ) -> None:
        if not train_batches:
            raise ValueError("train_batches must contain at least one minibatch")
        self.model = model
        self.train_batches = list(train_batches)
        self.test_batch = test_batch
        self.store = store
        self.config = config or TrainingConfig()
        self.callbacks = list(callbacks)
        self.state: TrainingState | None = None
        self.history: list[EpochResult] = []

    def run(self) -> TrainingResult:
        """Train until a terminal state is reached and return the outcome."""
        cfg = self.config
        state = TrainingState(learning_rate=cfg.learning_rate)
        self.state = state
        self.history = []
        persistence_errors: list[str] = []
        self.model.set_learning_rate(state.learning_rate)

        logger.info(
            f"Starting training: {len(self.train_batches)} minibatches/epoch, "
            f"lr={state.learning_rate:g}, target={cfg.target_accuracy}, "
            f"max_epochs={cfg.max_epochs}"
        )
        for cb in self.callbacks:
            cb.on_run_start(self)

        while state.status is RunStatus.RUNNING:
            epoch = state.current_epoch
            train_loss = self._train_epoch(epoch)

            evaluation = evaluate(self.model, self.test_batch)
            logger.info(
                f"[{epoch:03d}] test accuracy: {evaluation.accuracy:.4f} "
                f"(loss {evaluation.loss:.4f}, train loss {train_loss:.4f})"
            )

            decision = apply_epoch_policy(state, evaluation.accuracy, cfg)

            checkpoint_written = False
            if decision.write_checkpoint:
                logger.info(
                    f" -> New best accuracy! Saving model out to {self.store.path}"
                )
                try:
                    self.store.save(
                        Checkpoint(
                            parameters=self.model.export_parameters(),
                            epoch=epoch,
                            accuracy=evaluation.accuracy,
                        )
                    )
                    checkpoint_written = True
                except PersistenceError as e:
                    logger.warning(f" -> Checkpoint write failed, continuing: {e}")
                    persistence_errors.append(str(e))

            if decision.decayed:
                self.model.set_learning_rate(state.learning_rate)
                logger.warning(
                    " -> Haven't improved in a while, dropping learning rate "
                    f"to {state.learning_rate:g}!"
                )

            self._log_transition(decision.status, epoch)

            epoch_result = EpochResult(
                epoch=epoch,
                accuracy=evaluation.accuracy,
                loss=evaluation.loss,
                train_loss=train_loss,
                learning_rate=state.learning_rate,
                checkpoint_written=checkpoint_written,
                learning_rate_decayed=decision.decayed,
                status=decision.status,
            )
            self.history.append(epoch_result)
            for cb in self.callbacks:
                cb.on_epoch_end(self, epoch_result)

        result = TrainingResult(
            status=state.status,
            state=state.model_copy(),
            epochs=list(self.history),
            persistence_errors=persistence_errors,
        )
        for cb in self.callbacks:
            cb.on_run_end(self, result)
        return result

    def _train_epoch(self, epoch: int) -> float:
        """One pass over all minibatches; returns the mean training loss."""
        total = 0.0
        pbar = tqdm(
            self.train_batches,
            desc=f"Epoch {epoch} [Train]",
            leave=False,
            disable=not self.config.show_progress,
        )
        for batch_idx, batch in enumerate(pbar):
            try:
                loss = self.model.backward_and_update(batch["images"], batch["labels"])
            except TrainingDiverged:
                logger.error(f"Training diverged at epoch {epoch}, batch {batch_idx}")
                raise
            except (ArithmeticError, RuntimeError) as e:
                logger.error(f"Update failed at epoch {epoch}, batch {batch_idx}: {e}")
                raise TrainingDiverged(
                    f"update failed at epoch {epoch}, batch {batch_idx}: {e}"
                ) from e
            if not math.isfinite(loss):
                logger.error(f"Training diverged at epoch {epoch}, batch {batch_idx}")
                raise TrainingDiverged(
                    f"non-finite loss {loss} at epoch {epoch}, batch {batch_idx}"
                )
            total += loss
            pbar.set_postfix({"loss": f"{total / (batch_idx + 1):.4f}"})
        return total / len(self.train_batches)

    def _log_transition(self, status: RunStatus, epoch: int) -> None:
        if status is RunStatus.CONVERGED_TARGET:
            logger.info(
                f" -> Early-exiting: reached target accuracy of "
                f"{self.config.target_accuracy:.1%} at epoch {epoch}"
            )
        elif status is RunStatus.CONVERGED_STAGNANT:
            logger.warning(" -> We're calling this converged.")
        elif status is RunStatus.EXHAUSTED:
            logger.warning(
                f" -> Epoch budget of {self.config.max_epochs} exhausted"
            )
