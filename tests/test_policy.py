"""Tests for the per-epoch checkpoint, decay and stopping policy."""

from __future__ import annotations

import pytest

from mnist_classifier.config import TrainingConfig
from mnist_classifier.training import (
    EpochDecision,
    RunStatus,
    TrainingState,
    apply_epoch_policy,
)


def _drive(
    accuracies: list[float], config: TrainingConfig
) -> tuple[TrainingState, list[EpochDecision]]:
    """Feed accuracies until the sequence ends or the run terminates."""
    state = TrainingState(learning_rate=config.learning_rate)
    decisions = []
    for acc in accuracies:
        decisions.append(apply_epoch_policy(state, acc, config))
        if state.status.is_terminal:
            break
    return state, decisions


class TestInitialState:
    def test_defaults(self) -> None:
        state = TrainingState(learning_rate=1e-3)
        assert state.current_epoch == 0
        assert state.best_accuracy == 0.0
        assert state.last_improvement_epoch == 0
        assert state.best_epoch == 0
        assert state.status is RunStatus.RUNNING


class TestCheckpointPolicy:
    def test_ties_and_improvements_write(self) -> None:
        _, decisions = _drive([0.5, 0.5, 0.4, 0.6, 0.6], TrainingConfig(plateau_patience=5))
        assert [d.epoch for d in decisions if d.write_checkpoint] == [0, 1, 3, 4]

    def test_dip_does_not_lower_best(self) -> None:
        state, _ = _drive([0.5, 0.4], TrainingConfig())
        assert state.best_accuracy == 0.5

    def test_zero_accuracy_first_epoch_still_writes(self) -> None:
        _, decisions = _drive([0.0], TrainingConfig())
        assert decisions[0].write_checkpoint
        assert not decisions[0].improved

    def test_tie_keeps_improvement_clock(self) -> None:
        state, decisions = _drive([0.5, 0.6, 0.6], TrainingConfig())
        assert [d.improved for d in decisions] == [True, True, False]
        assert state.last_improvement_epoch == 1
        assert state.best_epoch == 1


class TestLearningRateDecay:
    def test_single_decay_on_flat_accuracy(self) -> None:
        cfg = TrainingConfig(plateau_patience=5, learning_rate=1e-3)
        state, decisions = _drive([0.5] * 7, cfg)

        assert [d.epoch for d in decisions if d.decayed] == [5]
        assert state.learning_rate == pytest.approx(1e-4)
        assert state.last_improvement_epoch == 5

    def test_decays_spaced_by_patience(self) -> None:
        cfg = TrainingConfig(plateau_patience=2, stagnation_limit=50)
        _, decisions = _drive([0.5] + [0.1] * 8, cfg)
        assert [d.epoch for d in decisions if d.decayed] == [2, 4, 6, 8]
        assert decisions[-1].epoch == 8

    def test_no_decay_at_floor(self) -> None:
        cfg = TrainingConfig(
            plateau_patience=1, stagnation_limit=50, learning_rate=1e-6, lr_floor=1e-6
        )
        state, decisions = _drive([0.5] + [0.1] * 5, cfg)
        assert not any(d.decayed for d in decisions)
        assert state.learning_rate == 1e-6

    def test_decays_while_strictly_above_floor(self) -> None:
        # 1e-3 / 10 / 10 / 10 lands just above 1e-6, so a fourth decay follows.
        cfg = TrainingConfig(plateau_patience=1, stagnation_limit=50)
        state, decisions = _drive([0.5] + [0.1] * 10, cfg)
        assert [d.epoch for d in decisions if d.decayed] == [1, 2, 3, 4]
        assert state.learning_rate == pytest.approx(1e-7)
        assert state.learning_rate < cfg.lr_floor

    def test_improvement_restarts_window(self) -> None:
        cfg = TrainingConfig(plateau_patience=3)
        _, decisions = _drive([0.5, 0.5, 0.6, 0.6, 0.6, 0.6], cfg)
        assert [d.epoch for d in decisions if d.decayed] == [5]


class TestStopping:
    def test_target_exit_same_epoch(self) -> None:
        cfg = TrainingConfig(target_accuracy=0.9)
        state, decisions = _drive([0.5, 0.95, 0.99], cfg)

        assert len(decisions) == 2
        assert state.status is RunStatus.CONVERGED_TARGET
        assert state.current_epoch == 1
        assert decisions[-1].write_checkpoint

    def test_stagnation_exit_despite_decays(self) -> None:
        cfg = TrainingConfig(plateau_patience=5, stagnation_limit=10)
        state, decisions = _drive([0.5] + [0.3] * 30, cfg)

        assert state.status is RunStatus.CONVERGED_STAGNANT
        assert decisions[-1].epoch == 10
        assert [d.epoch for d in decisions if d.decayed] == [5, 10]

    def test_stagnation_on_flat_accuracy(self) -> None:
        state, decisions = _drive([0.5] * 30, TrainingConfig())
        assert state.status is RunStatus.CONVERGED_STAGNANT
        assert decisions[-1].epoch == 10

    def test_budget_exit(self) -> None:
        cfg = TrainingConfig(max_epochs=3)
        state, decisions = _drive([0.1, 0.2, 0.3, 0.4], cfg)

        assert state.status is RunStatus.EXHAUSTED
        assert len(decisions) == 3
        assert state.current_epoch == 2

    def test_terminal_state_rejects_further_epochs(self) -> None:
        cfg = TrainingConfig(max_epochs=1)
        state, _ = _drive([0.1], cfg)
        with pytest.raises(RuntimeError, match="already finished"):
            apply_epoch_policy(state, 0.2, cfg)

    def test_accuracy_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            apply_epoch_policy(TrainingState(learning_rate=1e-3), 1.2, TrainingConfig())
