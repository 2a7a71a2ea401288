# file: flightcode_classifier/utils.py
from __future__ import annotations

import logging
import math
import sys
import time
from contextlib import contextmanager
from typing import Iterator, List

import pandas as pd
import structlog

from .errors import InvalidInput


def configure_logging(level: str = "INFO") -> None:
    """Human-readable console logging for the CLI and the API."""
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level.upper())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def is_missing(value: object) -> bool:
    """None, NaN, or blank text."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def ensure_column_count(df: pd.DataFrame, n: int, name: str) -> None:
    """Raise with a clear message if a positional dataset has too few columns."""
    if df.shape[1] < n:
        found: List[str] = [str(c) for c in df.columns]
        raise InvalidInput(f"{name} needs at least {n} columns, found {found}")


class Timer:
    elapsed: float = 0.0


@contextmanager
def timed() -> Iterator[Timer]:
    """Wall-clock duration of the enclosed block, in seconds."""
    timer = Timer()
    start = time.perf_counter()
    try:
        yield timer
    finally:
        timer.elapsed = time.perf_counter() - start
