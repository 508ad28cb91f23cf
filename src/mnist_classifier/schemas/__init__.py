"""Inference response schemas."""

from mnist_classifier.schemas.response import (
    BarChart,
    GatewayResponse,
    InvalidInputResponse,
    PlaceholderResponse,
    PredictionResponse,
)

__all__ = [
    "BarChart",
    "GatewayResponse",
    "InvalidInputResponse",
    "PlaceholderResponse",
    "PredictionResponse",
]
