# file: flightcode_classifier/errors.py
from __future__ import annotations

from typing import Any, Optional


class FlightCodeClassifierError(Exception):
    """Base class for every error raised by this package."""


class InvalidInput(FlightCodeClassifierError, ValueError):
    """A record is missing a required field or carries a malformed value."""


class TrainingFailure(FlightCodeClassifierError):
    """The fit could not produce a model; nothing partial is returned."""


class PersistenceFailure(FlightCodeClassifierError):
    """
    A model artifact could not be written or read.

    When raised by the trainer after a successful fit, ``model`` holds the
    in-memory model so saving can be retried without retraining.
    """

    def __init__(self, message: str, model: Optional[Any] = None):
        super().__init__(message)
        self.model = model


class ModelLoadError(PersistenceFailure):
    """The artifact stream is malformed, truncated or of an unknown format."""


class UnknownCustomMapping(ModelLoadError):
    """A persisted stage references a mapping name missing from the registry."""

    def __init__(self, name: str):
        super().__init__(f"custom mapping '{name}' is not registered")
        self.name = name


class EmptyEvaluationSet(FlightCodeClassifierError):
    """No records were evaluated, so accuracy is undefined."""
