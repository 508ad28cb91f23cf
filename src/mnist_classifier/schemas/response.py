"""Responses returned by :meth:`InferenceGateway.handle_request`.

Each response carries a ``kind`` discriminator so a transport layer can
render it without isinstance checks.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class BarChart(BaseModel, frozen=True):
    """Class probabilities laid out for a bar chart."""

    categories: list[int]
    values: list[float]

    @model_validator(mode="after")
    def _same_length(self) -> BarChart:
        if len(self.categories) != len(self.values):
            raise ValueError(
                f"{len(self.categories)} categories but {len(self.values)} values"
            )
        return self


class PlaceholderResponse(BaseModel, frozen=True):
    """Returned for an empty request; the model is not invoked."""

    kind: Literal["placeholder"] = "placeholder"
    message: str = "Enter a valid file name"
    hint: str = "Possible values can be found in the assets folder"


class InvalidInputResponse(BaseModel, frozen=True):
    """Returned when the referenced image cannot be used."""

    kind: Literal["invalid_input"] = "invalid_input"
    message: str


class PredictionResponse(BaseModel, frozen=True):
    """Model output for one image."""

    kind: Literal["prediction"] = "prediction"
    source: str
    epoch: int
    accuracy: float
    chart: BarChart
    predicted_class: int = Field(ge=0)


GatewayResponse = PlaceholderResponse | InvalidInputResponse | PredictionResponse
