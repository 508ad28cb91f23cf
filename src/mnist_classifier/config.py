"""Pydantic frozen configuration models for mnist_classifier."""

from pydantic import BaseModel, Field, model_validator


class TrainingConfig(BaseModel, frozen=True):
    """Training controller policy and optimisation settings.

    All fields are validated at construction time. Frozen, no mutation after
    creation.  ``max_epochs`` counts epochs, so a run covers epochs
    ``0 .. max_epochs - 1`` at most.
    """

    batch_size: int = Field(default=128, ge=1)
    learning_rate: float = Field(default=1e-3, gt=0.0)
    target_accuracy: float = Field(default=0.999, ge=0.0, le=1.0)
    plateau_patience: int = Field(default=5, ge=1)
    stagnation_limit: int = Field(default=10, ge=1)
    lr_decay_factor: float = Field(default=10.0, gt=1.0)
    lr_floor: float = Field(default=1e-6, gt=0.0)
    max_epochs: int = Field(default=100, ge=1)
    show_progress: bool = True

    @model_validator(mode="after")
    def _floor_below_initial_rate(self) -> "TrainingConfig":
        """A floor above the initial rate would make decay unreachable."""
        if self.lr_floor > self.learning_rate:
            raise ValueError(
                f"lr_floor ({self.lr_floor}) must not exceed "
                f"learning_rate ({self.learning_rate})"
            )
        return self


class DataConfig(BaseModel, frozen=True):
    """Where the MNIST splits live and whether to fetch them."""

    root: str = "data"
    download: bool = True
    num_classes: int = Field(default=10, ge=2)


class ServingConfig(BaseModel, frozen=True):
    """Inference gateway settings."""

    checkpoint_path: str = "checkpoints/mnist_conv.json"
    assets_dir: str = "assets"
    image_size: int = Field(default=28, ge=1)
    download_timeout: float = Field(default=10.0, gt=0.0)
    allowed_extensions: tuple[str, ...] = (".jpg", ".jpeg", ".png")
    download_name: str = "temp.jpg"
