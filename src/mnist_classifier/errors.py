"""Exception hierarchy for mnist_classifier."""


class MnistClassifierError(Exception):
    """Base class for all errors raised by mnist_classifier."""


class ShapeMismatch(MnistClassifierError, ValueError):
    """Tensor dimensions disagree (example counts, class counts, image shape)."""


class TrainingDiverged(MnistClassifierError):
    """A model update produced a non-finite loss or failed numerically."""


class PersistenceError(MnistClassifierError):
    """A checkpoint could not be written or decoded."""


class NoCheckpointAvailable(MnistClassifierError, FileNotFoundError):
    """No checkpoint has ever been written to the store."""


class InvalidInput(MnistClassifierError):
    """An inference request referenced an unusable image."""
