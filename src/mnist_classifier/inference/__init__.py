"""Single-image inference over a persisted checkpoint."""

from mnist_classifier.inference.gateway import InferenceGateway, is_url

__all__ = [
    "InferenceGateway",
    "is_url",
]
