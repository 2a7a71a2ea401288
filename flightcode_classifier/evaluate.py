# file: flightcode_classifier/evaluate.py
from __future__ import annotations

import math
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from itertools import islice
from typing import Callable, Deque, Iterable, Iterator, List, Optional, Tuple

import structlog

from .data_models import EvaluationTally, FeatureRecord, Prediction
from .model import TrainedModel

logger = structlog.get_logger(__name__)

Outcome = Tuple[FeatureRecord, Prediction, bool]
Reporter = Callable[[FeatureRecord, Prediction, bool, EvaluationTally], None]


@dataclass
class EvaluationResult:
    tally: EvaluationTally
    accuracy: float
    mean_confidence: float


class ProgressReporter:
    """
    Logs a sample of predictions while an evaluation runs.

    Every ``correct_every``-th correct and every ``incorrect_every``-th
    incorrect prediction is logged with its confidence.
    """

    def __init__(self, correct_every: int = 300, incorrect_every: int = 30, log=None):
        if correct_every < 1 or incorrect_every < 1:
            raise ValueError("reporting intervals must be positive")
        self.correct_every = correct_every
        self.incorrect_every = incorrect_every
        self._log = log or logger

    def __call__(
        self,
        record: FeatureRecord,
        prediction: Prediction,
        is_correct: bool,
        tally: EvaluationTally,
    ) -> None:
        fields = dict(
            flight_code=record.flight_code,
            iata_code=record.iata_code,
            predicted=prediction.predicted_label,
            confidence=round(prediction.confidence, 4),
        )
        if is_correct and tally.correct % self.correct_every == 0:
            self._log.info("prediction_correct", **fields)
        elif not is_correct and tally.incorrect % self.incorrect_every == 0:
            self._log.warning("prediction_incorrect", **fields)


def classify(model: TrainedModel, record: FeatureRecord) -> Outcome:
    """Predict one record and compare exactly against its true label."""
    prediction = model.predict(record)
    return record, prediction, prediction.predicted_label == record.iata_code


def _classify_chunk(model: TrainedModel, chunk: List[FeatureRecord]) -> Tuple[EvaluationTally, List[Outcome]]:
    partial = EvaluationTally()
    outcomes = []
    for record in chunk:
        outcome = classify(model, record)
        partial.record(outcome[2])
        outcomes.append(outcome)
    return partial, outcomes


def _chunks(records: Iterable[FeatureRecord], size: int) -> Iterator[List[FeatureRecord]]:
    it = iter(records)
    while True:
        chunk = list(islice(it, size))
        if not chunk:
            return
        yield chunk


def evaluate(
    model: TrainedModel,
    records: Iterable[FeatureRecord],
    workers: int = 1,
    reporter: Optional[Reporter] = None,
    chunk_size: int = 256,
) -> EvaluationResult:
    """
    Classify every record and tally correct vs incorrect predictions.

    With ``workers > 1`` chunks are classified on a thread pool; each chunk
    yields a partial tally and the partials are summed afterwards. The
    reporter always runs on the calling thread in input order.

    Raises EmptyEvaluationSet when no records were evaluated.
    """
    if workers < 1:
        raise ValueError("workers must be >= 1")

    tally = EvaluationTally()
    confidence_sum = 0.0
    confidence_n = 0

    def _observe(outcome: Outcome, progress: EvaluationTally) -> None:
        nonlocal confidence_sum, confidence_n
        record, prediction, is_correct = outcome
        confidence = prediction.confidence
        if not math.isnan(confidence):
            confidence_sum += confidence
            confidence_n += 1
        if reporter is not None:
            reporter(record, prediction, is_correct, progress)

    if workers == 1:
        for record in records:
            outcome = classify(model, record)
            tally.record(outcome[2])
            _observe(outcome, tally)
    else:
        progress = EvaluationTally()

        def _merge(future: Future) -> None:
            nonlocal tally
            partial, outcomes = future.result()
            tally = tally + partial
            for outcome in outcomes:
                progress.record(outcome[2])
                _observe(outcome, progress)

        # At most two chunks per worker in flight, so input is read lazily
        pending: Deque[Future] = deque()
        with ThreadPoolExecutor(max_workers=workers) as executor:
            for chunk in _chunks(records, chunk_size):
                pending.append(executor.submit(_classify_chunk, model, chunk))
                if len(pending) >= 2 * workers:
                    _merge(pending.popleft())
            while pending:
                _merge(pending.popleft())

    accuracy = tally.accuracy
    mean_confidence = confidence_sum / confidence_n if confidence_n else math.nan
    logger.info(
        "evaluation_finished",
        correct=tally.correct,
        incorrect=tally.incorrect,
        accuracy=round(accuracy, 4),
        mean_confidence=round(mean_confidence, 4),
    )
    return EvaluationResult(tally=tally, accuracy=accuracy, mean_confidence=mean_confidence)
