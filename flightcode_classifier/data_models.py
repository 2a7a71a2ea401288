# file: flightcode_classifier/data_models.py
from __future__ import annotations

import math
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import EmptyEvaluationSet


class FeatureRecord(BaseModel):
    """
    One labeled example: a flight code and its true IATA aircraft code.

    Direct construction with a missing field raises pydantic's
    ValidationError. Build records from raw values with
    ``features.to_record`` to get InvalidInput instead; training and
    prediction also reject blank fields with InvalidInput.
    """

    model_config = ConfigDict(frozen=True)

    flight_code: str
    iata_code: str


class DerivedFeature(BaseModel):
    """Output of the custom feature mapping; a boolean carried as a float."""

    model_config = ConfigDict(frozen=True)

    special_feature: float

    @field_validator("special_feature")
    @classmethod
    def _boolean_valued(cls, v: float) -> float:
        if v not in (0.0, 1.0):
            raise ValueError(f"special_feature must be 0.0 or 1.0, got {v}")
        return v


class Prediction(BaseModel):
    """Classifier output for one record; one score per label in the vocabulary."""

    model_config = ConfigDict(frozen=True)

    predicted_label: str
    score: List[float] = Field(default_factory=list)

    @property
    def confidence(self) -> float:
        # Predicted label is assumed to carry the highest score
        if not self.score:
            return math.nan
        return max(self.score)


class EvaluationTally(BaseModel):
    """Running correct/incorrect counts; partial tallies merge with ``+``."""

    correct: int = 0
    incorrect: int = 0

    def record(self, is_correct: bool) -> None:
        if is_correct:
            self.correct += 1
        else:
            self.incorrect += 1

    def __add__(self, other: "EvaluationTally") -> "EvaluationTally":
        return EvaluationTally(
            correct=self.correct + other.correct,
            incorrect=self.incorrect + other.incorrect,
        )

    @property
    def total(self) -> int:
        return self.correct + self.incorrect

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            raise EmptyEvaluationSet("accuracy is undefined for zero evaluated records")
        return self.correct / self.total


class TrainConfig(BaseModel):
    """Training hyperparameters."""

    random_state: int = 0
    char_ngram_max: int = Field(default=3, ge=1)
    max_iter: int = Field(default=1000, ge=1)
    regularization: float = Field(default=1.0, gt=0.0)


class ModelCard(BaseModel):
    """Metadata persisted with each trained model."""

    version: str = "1.0"
    labels: List[str]
    custom_mappings: List[str]
    stages: List[str]
    train_rows: int
    training_seconds: float
    notes: Optional[str] = None


class PredictRequest(BaseModel):
    """FastAPI request body for /predict."""

    model_path: str
    flight_codes: List[str]


class PredictResponse(BaseModel):
    predicted_label: str
    confidence: float
    flight_code: str
