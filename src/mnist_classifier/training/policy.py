"""Per-epoch decision policy of the training controller.

The policy is separated from the controller so it can be driven by a scripted
accuracy sequence.  It performs no I/O: it updates the given
:class:`TrainingState` and returns an :class:`EpochDecision` telling the
controller which side effects (checkpoint write, learning-rate change) to
carry out.

Order of evaluation for one epoch's held-out accuracy:

1. checkpoint policy (``accuracy >= best``, ties included)
2. target check
3. plateau decay
4. stagnation check
5. epoch budget
"""

from __future__ import annotations

from pydantic import BaseModel

from mnist_classifier.config import TrainingConfig
from mnist_classifier.training.state import RunStatus, TrainingState


class EpochDecision(BaseModel, frozen=True):
    epoch: int
    write_checkpoint: bool
    improved: bool
    decayed: bool
    status: RunStatus


def apply_epoch_policy(
    state: TrainingState, accuracy: float, config: TrainingConfig
) -> EpochDecision:
    """Advance ``state`` by one epoch given that epoch's held-out accuracy.

    Ties with the best accuracy refresh the checkpoint but do not reset the
    plateau or stagnation clocks; only a strict improvement does.  After a
    decay the plateau clock restarts at the current epoch so decays are at
    least ``plateau_patience`` epochs apart.
    """
    if state.status.is_terminal:
        raise RuntimeError(f"run already finished with status {state.status}")
    if not 0.0 <= accuracy <= 1.0:
        raise ValueError(f"accuracy must lie in [0, 1], got {accuracy}")

    epoch = state.current_epoch
    write_checkpoint = accuracy >= state.best_accuracy
    improved = accuracy > state.best_accuracy
    decayed = False

    if write_checkpoint:
        state.best_accuracy = accuracy
    if improved:
        state.last_improvement_epoch = epoch
        state.best_epoch = epoch

    if accuracy >= config.target_accuracy:
        state.status = RunStatus.CONVERGED_TARGET
    else:
        if (
            epoch - state.last_improvement_epoch >= config.plateau_patience
            and state.learning_rate > config.lr_floor
        ):
            state.learning_rate = state.learning_rate / config.lr_decay_factor
            state.last_improvement_epoch = epoch
            decayed = True

        if epoch - state.best_epoch >= config.stagnation_limit:
            state.status = RunStatus.CONVERGED_STAGNANT
        elif epoch + 1 >= config.max_epochs:
            state.status = RunStatus.EXHAUSTED
        else:
            state.current_epoch = epoch + 1

    return EpochDecision(
        epoch=epoch,
        write_checkpoint=write_checkpoint,
        improved=improved,
        decayed=decayed,
        status=state.status,
    )
