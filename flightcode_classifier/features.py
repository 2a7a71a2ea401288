# file: flightcode_classifier/features.py
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Union

import pandas as pd
from pydantic import ValidationError
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.compose import ColumnTransformer
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import LabelEncoder

from .data_models import DerivedFeature, FeatureRecord, TrainConfig
from .errors import InvalidInput, UnknownCustomMapping
from .mappings import FeatureMapper
from .utils import ensure_column_count, is_missing

FLIGHT_CODE_COL = "FlightCode"
LABEL_COL = "IATACode"

# Fixed stage order; label_encode/label_decode live outside the sklearn Pipeline
PIPELINE_STAGES: List[str] = [
    "label_encode",
    "special_feature",
    "featurize_text",
    "concatenate",
    "classifier",
    "label_decode",
]

# Named steps of the sklearn Pipeline; featurize_text sits inside concatenate
PIPELINE_STEPS: List[str] = ["special_feature", "concatenate", "classifier"]


def to_record(flight_code: object, iata_code: object, where: str = "record") -> FeatureRecord:
    """Build a FeatureRecord, failing fast on missing fields."""
    if is_missing(flight_code):
        raise InvalidInput(f"{where}: flight code is missing")
    if is_missing(iata_code):
        raise InvalidInput(f"{where}: IATA code is missing")
    return FeatureRecord(flight_code=str(flight_code), iata_code=str(iata_code))


def load_records(path: Union[str, Path], chunksize: int = 10_000) -> Iterator[FeatureRecord]:
    """
    Stream (flight code, IATA code) records from a headed CSV.

    Columns are taken by position; header names are ignored.
    """
    name = Path(path).name
    # why: keep "NA"/"NAN" style codes as text, not missing values
    with pd.read_csv(path, dtype=str, keep_default_na=False, chunksize=chunksize) as reader:
        offset = 0
        for chunk in reader:
            ensure_column_count(chunk, 2, name)
            codes = chunk.iloc[:, 0].tolist()
            labels = chunk.iloc[:, 1].tolist()
            for i, (code, label) in enumerate(zip(codes, labels)):
                # +2: one for the header row, one for 1-based line numbers
                yield to_record(code, label, where=f"{name} line {offset + i + 2}")
            offset += len(chunk)


def records_to_frame(records: Iterable[FeatureRecord]) -> pd.DataFrame:
    """
    Tabular view of the records: one row per record, named columns.

    Blank fields are rejected here with the same rule prediction applies.
    """
    rows = []
    for i, r in enumerate(records):
        if is_missing(r.flight_code):
            raise InvalidInput(f"record {i}: flight code is missing")
        if is_missing(r.iata_code):
            raise InvalidInput(f"record {i}: IATA code is missing")
        rows.append((r.flight_code, r.iata_code))
    return pd.DataFrame(rows, columns=[FLIGHT_CODE_COL, LABEL_COL])


def codes_to_frame(flight_codes: Iterable[Optional[str]]) -> pd.DataFrame:
    codes = list(flight_codes)
    for i, code in enumerate(codes):
        if is_missing(code):
            raise InvalidInput(f"flight code at position {i} is missing")
    return pd.DataFrame({FLIGHT_CODE_COL: codes})


class CustomMappingTransformer(TransformerMixin, BaseEstimator):
    """
    Pipeline stage that appends one derived column computed by a named mapping.

    Only ``mapping_name`` survives pickling. The mapper itself is code, so it
    is bound again from a registry after loading.
    """

    def __init__(self, mapping_name: str):
        self.mapping_name = mapping_name

    def bind(self, mapper: FeatureMapper) -> "CustomMappingTransformer":
        if mapper.name != self.mapping_name:
            raise ValueError(
                f"cannot bind mapping '{mapper.name}' to stage expecting '{self.mapping_name}'"
            )
        self.mapper_ = mapper
        return self

    @property
    def is_bound(self) -> bool:
        return getattr(self, "mapper_", None) is not None

    def fit(self, X, y=None):
        return self

    def _derive(self, value: object) -> float:
        try:
            return DerivedFeature(special_feature=self.mapper_(value)).special_feature
        except ValidationError as e:
            raise InvalidInput(
                f"mapping '{self.mapping_name}' produced a non-boolean feature for {value!r}"
            ) from e

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        if not self.is_bound:
            raise UnknownCustomMapping(self.mapping_name)
        mapper = self.mapper_
        X = X.copy()
        X[mapper.output_column] = [self._derive(v) for v in X[mapper.input_column]]
        return X

    def __getstate__(self):
        state = dict(super().__getstate__())
        state.pop("mapper_", None)
        return state


def build_pipeline(
    mapper: FeatureMapper, config: TrainConfig = TrainConfig()
) -> Tuple[LabelEncoder, Pipeline]:
    """
    Assemble the unfitted stages in their fixed order.

    Returns the label encoder (label_encode / label_decode) and the feature +
    classifier pipeline (special_feature -> featurize_text -> concatenate ->
    classifier).
    """
    special = CustomMappingTransformer(mapping_name=mapper.name).bind(mapper)
    text = TfidfVectorizer(analyzer="char_wb", ngram_range=(1, config.char_ngram_max))
    concatenate = ColumnTransformer(
        [
            ("featurize_text", text, mapper.input_column),
            ("derived", "passthrough", [mapper.output_column]),
        ]
    )
    classifier = LogisticRegression(
        C=config.regularization,
        max_iter=config.max_iter,
        random_state=config.random_state,
    )
    pipeline = Pipeline(
        [
            ("special_feature", special),
            ("concatenate", concatenate),
            ("classifier", classifier),
        ]
    )
    return LabelEncoder(), pipeline


def custom_stages(pipeline: Pipeline) -> List[CustomMappingTransformer]:
    """Every custom mapping stage in a (fitted or loaded) pipeline."""
    return [step for _, step in pipeline.steps if isinstance(step, CustomMappingTransformer)]


def pipeline_stages(pipeline: Pipeline) -> List[str]:
    """Stage names as laid out in a pipeline, label stages included."""
    names = ["label_encode"]
    for name, step in pipeline.steps:
        if isinstance(step, ColumnTransformer):
            names += [n for n, t, _ in step.transformers if not isinstance(t, str)]
        names.append(name)
    return names + ["label_decode"]
