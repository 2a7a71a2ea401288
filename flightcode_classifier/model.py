# file: flightcode_classifier/model.py
from __future__ import annotations

from typing import Iterable, List, Tuple, Union

import numpy as np
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import LabelEncoder

from .data_models import FeatureRecord, ModelCard, Prediction
from .features import codes_to_frame, custom_stages, pipeline_stages

RecordOrCode = Union[FeatureRecord, str]


def _flight_code(item: RecordOrCode) -> str:
    return item.flight_code if isinstance(item, FeatureRecord) else item


class TrainedModel:
    """
    A fitted flight-code classifier.

    Holds the label vocabulary and the fitted feature/classifier pipeline.
    Nothing here is mutated after construction, so one instance can serve
    concurrent predictions.
    """

    def __init__(self, label_encoder: LabelEncoder, pipeline: Pipeline, card: ModelCard):
        self._label_encoder = label_encoder
        self._pipeline = pipeline
        self.card = card

    @property
    def labels(self) -> Tuple[str, ...]:
        """Frozen label vocabulary, in internal key order."""
        return tuple(str(c) for c in self._label_encoder.classes_)

    @property
    def stages(self) -> List[str]:
        return pipeline_stages(self._pipeline)

    @property
    def custom_mappings(self) -> List[str]:
        return [stage.mapping_name for stage in custom_stages(self._pipeline)]

    @property
    def label_encoder(self) -> LabelEncoder:
        return self._label_encoder

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    def predict(self, item: RecordOrCode) -> Prediction:
        """Classify a single record (or bare flight code)."""
        return self.predict_many([item])[0]

    def predict_many(self, items: Iterable[RecordOrCode]) -> List[Prediction]:
        frame = codes_to_frame(_flight_code(i) for i in items)
        if frame.empty:
            return []
        scores = self._pipeline.predict_proba(frame)
        keys = self._pipeline.classes_[np.argmax(scores, axis=1)]
        labels = self._label_encoder.inverse_transform(keys)
        return [
            Prediction(predicted_label=str(label), score=row.tolist())
            for label, row in zip(labels, scores)
        ]

    def special_features(self, items: Iterable[RecordOrCode]) -> List[float]:
        """Derived feature column as the pipeline computes it."""
        frame = codes_to_frame(_flight_code(i) for i in items)
        stage = self._pipeline.named_steps["special_feature"]
        out = stage.transform(frame)
        return out[stage.mapper_.output_column].astype(float).tolist()

    def __repr__(self) -> str:
        return f"TrainedModel(labels={len(self.labels)}, mappings={self.custom_mappings})"
