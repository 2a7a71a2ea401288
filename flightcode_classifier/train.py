# file: flightcode_classifier/train.py
from __future__ import annotations

from typing import Iterable, Optional

import structlog

from .data_models import FeatureRecord, ModelCard, TrainConfig
from .errors import InvalidInput, PersistenceFailure, TrainingFailure
from .features import FLIGHT_CODE_COL, LABEL_COL, PIPELINE_STAGES, build_pipeline, records_to_frame
from .mappings import FLIGHT_CODE_MAPPING, MappingRegistry, default_registry
from .model import TrainedModel
from .persistence import Destination, save_model
from .utils import timed

logger = structlog.get_logger(__name__)


def train_model(
    records: Iterable[FeatureRecord],
    destination: Optional[Destination] = None,
    config: TrainConfig = TrainConfig(),
    registry: Optional[MappingRegistry] = None,
    mapping_name: str = FLIGHT_CODE_MAPPING,
) -> TrainedModel:
    """
    Fit the full pipeline on ``records`` and optionally persist the result.

    Single attempt, blocking. Either a usable model comes back or an error is
    raised and nothing is returned. A failed save raises PersistenceFailure
    carrying the trained model on ``.model``.
    """
    registry = default_registry() if registry is None else registry
    mapper = registry.get(mapping_name)

    df = records_to_frame(records)
    if df.empty:
        raise TrainingFailure("training dataset is empty")

    label_encoder, pipeline = build_pipeline(mapper, config)
    y = label_encoder.fit_transform(df[LABEL_COL])
    n_labels = len(label_encoder.classes_)
    if n_labels < 2:
        raise TrainingFailure(f"need at least 2 distinct labels to train, found {n_labels}")

    logger.info("training_started", rows=len(df), labels=n_labels, mapping=mapper.name)
    with timed() as t:
        try:
            pipeline.fit(df[[FLIGHT_CODE_COL]], y)
        except InvalidInput:
            raise
        except (ValueError, ArithmeticError) as e:
            raise TrainingFailure(f"fit failed: {e}") from e
    logger.info("training_finished", duration_seconds=round(t.elapsed, 3))

    card = ModelCard(
        labels=[str(c) for c in label_encoder.classes_],
        custom_mappings=[mapper.name],
        stages=list(PIPELINE_STAGES),
        train_rows=int(len(df)),
        training_seconds=t.elapsed,
        notes=f"char_ngram_max={config.char_ngram_max}, C={config.regularization}",
    )
    model = TrainedModel(label_encoder, pipeline, card)

    if destination is not None:
        try:
            save_model(model, destination)
        except PersistenceFailure as e:
            logger.error("model_save_failed", destination=str(destination), error=str(e))
            raise PersistenceFailure(str(e), model=model) from e

    return model
