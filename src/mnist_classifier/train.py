"""Training entrypoint for mnist_classifier.

Usage:
    mnist-train                                 # defaults
    mnist-train training.max_epochs=10          # override epochs
    mnist-train training.batch_size=64          # override batch size
    mnist-train checkpoint.path=/tmp/best.json  # checkpoint location
"""

import sys
from pathlib import Path

import hydra
import lightning as L
from hydra.utils import to_absolute_path
from loguru import logger
from omegaconf import DictConfig, OmegaConf

# Import models so @register fills the ConfigStore before Hydra composes.
import mnist_classifier.models  # noqa: F401
from mnist_classifier.callbacks.base import ControllerCallback
from mnist_classifier.checkpoint.store import CheckpointStore
from mnist_classifier.config import DataConfig, TrainingConfig
from mnist_classifier.data import load_mnist, partition, to_batch
from mnist_classifier.errors import TrainingDiverged
from mnist_classifier.models.base import TrainableModel
from mnist_classifier.training.controller import TrainingController
from mnist_classifier.training.state import TrainingResult


def build_callbacks(cfg: DictConfig) -> list[ControllerCallback]:
    callbacks: list[ControllerCallback] = []
    if cfg.get("callbacks"):
        for v in cfg.callbacks.values():
            if v is not None and "_target_" in v:
                callbacks.append(hydra.utils.instantiate(v))
    return callbacks


def run_training(cfg: DictConfig) -> TrainingResult:
    """Load data, build the model and run the controller to a terminal state."""
    training_cfg = TrainingConfig(**OmegaConf.to_container(cfg.training, resolve=True))  # type: ignore[arg-type]
    data_cfg = DataConfig(**OmegaConf.to_container(cfg.data, resolve=True))  # type: ignore[arg-type]
    data_cfg = data_cfg.model_copy(update={"root": to_absolute_path(data_cfg.root)})

    train_set = load_mnist(data_cfg, split="train")
    test_set = load_mnist(data_cfg, split="test")
    train_batches = partition(train_set, training_cfg.batch_size)
    test_batch = to_batch(test_set)

    model: TrainableModel = hydra.utils.instantiate(
        cfg.model,
        num_classes=data_cfg.num_classes,
        learning_rate=training_cfg.learning_rate,
    )
    store = CheckpointStore(Path(to_absolute_path(cfg.checkpoint.path)))

    controller = TrainingController(
        model=model,
        train_batches=train_batches,
        test_batch=test_batch,
        store=store,
        config=training_cfg,
        callbacks=build_callbacks(cfg),
    )
    return controller.run()


@hydra.main(version_base=None, config_path="conf", config_name="train_mnist_conv")
def main(cfg: DictConfig) -> None:
    """Run training with the given Hydra config."""
    logger.remove()
    logger.add(sys.stderr, level=cfg.get("log_level", "INFO"))

    logger.info(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")

    L.seed_everything(cfg.get("seed", 42), workers=True)

    try:
        result = run_training(cfg)
    except TrainingDiverged as e:
        logger.error(f"Training diverged: {e}")
        sys.exit(1)

    logger.info(
        f"Finished with status {result.status.value} after {len(result.epochs)} "
        f"epoch(s); best accuracy {result.state.best_accuracy:.4f} "
        f"first reached at epoch {result.state.best_epoch}, "
        f"checkpoint holds epoch {result.checkpoint_epoch}"
    )
    if result.persistence_errors:
        logger.error(
            f"{len(result.persistence_errors)} checkpoint write(s) failed; "
            f"the stored checkpoint may be older than the best epoch"
        )
        sys.exit(2)


if __name__ == "__main__":
    main()
