# file: flightcode_classifier/mappings.py
"""
Custom feature mappings and the registry that binds them by name.

A persisted model stores only a mapping's name. Whoever loads the model
supplies a registry, and the loader resolves every name against it before the
model is handed back.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterator, Optional, Protocol, runtime_checkable

import structlog

from .errors import InvalidInput, UnknownCustomMapping

logger = structlog.get_logger(__name__)

# Stable registration name; models trained by earlier releases reference it
FLIGHT_CODE_MAPPING = "FlightCodeMapping"

# Boeing 737-800 markers
SPECIAL_MARKERS = ("B738", "73H")


@runtime_checkable
class FeatureMapper(Protocol):
    """Anything that turns one input column value into one float feature."""

    name: str
    input_column: str
    output_column: str

    def __call__(self, value: object) -> float:
        ...


def special_feature(flight_code: Optional[str]) -> float:
    """1.0 when the flight code marks a 737-800, else 0.0."""
    if flight_code is None or not isinstance(flight_code, str):
        raise InvalidInput(f"flight code must be a string, got {flight_code!r}")
    return 1.0 if any(marker in flight_code for marker in SPECIAL_MARKERS) else 0.0


class FunctionMapper:
    """Adapts a plain function to the FeatureMapper interface."""

    def __init__(
        self,
        name: str,
        func: Callable[[object], float],
        input_column: str,
        output_column: str,
        setup: Optional[Callable[[], None]] = None,
    ):
        self.name = name
        self.input_column = input_column
        self.output_column = output_column
        self._func = func
        self._setup = setup

    def setup(self) -> None:
        if self._setup is not None:
            self._setup()

    def __call__(self, value: object) -> float:
        return float(self._func(value))

    def __repr__(self) -> str:
        return f"FunctionMapper(name={self.name!r}, {self.input_column!r} -> {self.output_column!r})"


class MappingRegistry:
    """Name -> FeatureMapper lookup supplied by the host application."""

    def __init__(self) -> None:
        self._mappers: Dict[str, FeatureMapper] = {}

    def register(self, mapper: FeatureMapper) -> FeatureMapper:
        if mapper.name in self._mappers:
            raise ValueError(f"custom mapping '{mapper.name}' is already registered")
        # One-time setup happens here, never lazily at first call
        setup = getattr(mapper, "setup", None)
        if callable(setup):
            setup()
        self._mappers[mapper.name] = mapper
        logger.debug("custom_mapping_registered", name=mapper.name)
        return mapper

    def get(self, name: str) -> FeatureMapper:
        try:
            return self._mappers[name]
        except KeyError:
            raise UnknownCustomMapping(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._mappers

    def __iter__(self) -> Iterator[str]:
        return iter(self._mappers)

    def __len__(self) -> int:
        return len(self._mappers)


flight_code_mapper = FunctionMapper(
    name=FLIGHT_CODE_MAPPING,
    func=special_feature,
    input_column="FlightCode",
    output_column="SpecialFeature",
)


def default_registry() -> MappingRegistry:
    """Fresh registry holding the mappings this package ships."""
    registry = MappingRegistry()
    registry.register(flight_code_mapper)
    return registry
