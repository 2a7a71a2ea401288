# file: flightcode_classifier/persistence.py
"""
Model artifact save/load.

The artifact is a joblib blob holding the label vocabulary, the fitted
pipeline and the model card. Custom mapping stages are stored by name only;
``load_model`` binds each one from the supplied registry before returning.
"""
from __future__ import annotations

import io
import lzma
import os
import pickle
import zlib
from pathlib import Path
from typing import IO, Any, Dict, Optional, Union

import structlog
from joblib import dump, load
from pydantic import ValidationError
from sklearn.compose import ColumnTransformer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import LabelEncoder

from .data_models import ModelCard
from .errors import ModelLoadError, PersistenceFailure
from .features import PIPELINE_STEPS, CustomMappingTransformer, custom_stages
from .mappings import MappingRegistry, default_registry
from .model import TrainedModel

logger = structlog.get_logger(__name__)

ARTIFACT_FORMAT = "flightcode-classifier"
ARTIFACT_VERSION = 1

Destination = Union[str, os.PathLike, IO[bytes]]

# Everything joblib/pickle may throw on a corrupted or foreign stream
_DECODE_ERRORS = (
    pickle.UnpicklingError,
    EOFError,
    ValueError,
    TypeError,
    AttributeError,
    ImportError,
    IndexError,
    KeyError,
    zlib.error,
    lzma.LZMAError,
)


def _is_path(target: Destination) -> bool:
    return isinstance(target, (str, os.PathLike))


def _bundle(model: TrainedModel) -> Dict[str, Any]:
    return {
        "format": ARTIFACT_FORMAT,
        "version": ARTIFACT_VERSION,
        "card": model.card.model_dump(),
        "label_encoder": model.label_encoder,
        "pipeline": model.pipeline,
    }


def save_model(model: TrainedModel, destination: Destination) -> None:
    """Write the model artifact to a path or a binary file object."""
    try:
        if _is_path(destination):
            path = Path(destination)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as fh:
                dump(_bundle(model), fh)
        else:
            dump(_bundle(model), destination)
    except (OSError, pickle.PicklingError) as e:
        raise PersistenceFailure(f"could not write model to {destination}: {e}") from e
    logger.info("model_saved", destination=str(destination), labels=len(model.labels))


def dumps_model(model: TrainedModel) -> bytes:
    buf = io.BytesIO()
    save_model(model, buf)
    return buf.getvalue()


def _decode(fh: IO[bytes], source: Destination) -> Any:
    try:
        return load(fh)
    # joblib sniffs compression from the leading bytes; bz2/gzip raise OSError
    except (OSError, *_DECODE_ERRORS) as e:
        raise ModelLoadError(f"model artifact {source} is malformed: {e}") from e


def _read_bundle(source: Destination) -> Any:
    if not _is_path(source):
        return _decode(source, source)
    try:
        fh = open(source, "rb")
    except OSError as e:
        raise PersistenceFailure(f"could not read model from {source}: {e}") from e
    with fh:
        return _decode(fh, source)


def _validate(bundle: Any) -> TrainedModel:
    if not isinstance(bundle, dict) or bundle.get("format") != ARTIFACT_FORMAT:
        raise ModelLoadError("not a flight-code classifier artifact")
    if bundle.get("version") != ARTIFACT_VERSION:
        raise ModelLoadError(f"unsupported artifact version {bundle.get('version')!r}")
    label_encoder = bundle.get("label_encoder")
    pipeline = bundle.get("pipeline")
    if not isinstance(label_encoder, LabelEncoder) or not isinstance(pipeline, Pipeline):
        raise ModelLoadError("artifact is missing its label vocabulary or pipeline")
    steps = [name for name, _ in pipeline.steps]
    if steps != PIPELINE_STEPS:
        raise ModelLoadError(f"artifact pipeline has steps {steps}, expected {PIPELINE_STEPS}")
    named = pipeline.named_steps
    if not isinstance(named["special_feature"], CustomMappingTransformer) or not isinstance(
        named["concatenate"], ColumnTransformer
    ):
        raise ModelLoadError("artifact pipeline stages have unexpected types")
    try:
        card = ModelCard.model_validate(bundle.get("card"))
    except ValidationError as e:
        raise ModelLoadError(f"artifact model card is invalid: {e}") from e
    return TrainedModel(label_encoder, pipeline, card)


def load_model(source: Destination, registry: Optional[MappingRegistry] = None) -> TrainedModel:
    """
    Rebuild a TrainedModel from an artifact, binding custom mappings by name.

    Raises UnknownCustomMapping if any referenced name is absent from the
    registry; no partially bound model is ever returned.
    """
    registry = default_registry() if registry is None else registry
    model = _validate(_read_bundle(source))

    stages = custom_stages(model.pipeline)
    # Resolve every name before binding any of them
    mappers = [registry.get(stage.mapping_name) for stage in stages]
    for stage, mapper in zip(stages, mappers):
        stage.bind(mapper)

    logger.info(
        "model_loaded",
        source=str(source),
        labels=len(model.labels),
        custom_mappings=model.custom_mappings,
    )
    return model


def loads_model(data: bytes, registry: Optional[MappingRegistry] = None) -> TrainedModel:
    return load_model(io.BytesIO(data), registry)


def write_model_card(card: ModelCard, path: Union[str, os.PathLike]) -> None:
    """JSON sidecar next to the artifact, for humans and dashboards."""
    try:
        Path(path).write_text(card.model_dump_json(indent=2))
    except OSError as e:
        raise PersistenceFailure(f"could not write model card to {path}: {e}") from e
