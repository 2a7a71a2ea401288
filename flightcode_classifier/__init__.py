"""Flight code -> IATA aircraft type classifier."""

from .data_models import EvaluationTally, FeatureRecord, Prediction, TrainConfig
from .evaluate import EvaluationResult, ProgressReporter
from .mappings import MappingRegistry, default_registry, special_feature
from .model import TrainedModel
from .persistence import load_model, save_model
from .train import train_model

__all__ = [
    "EvaluationResult",
    "EvaluationTally",
    "FeatureRecord",
    "MappingRegistry",
    "Prediction",
    "ProgressReporter",
    "TrainConfig",
    "TrainedModel",
    "default_registry",
    "load_model",
    "save_model",
    "special_feature",
    "train_model",
]
