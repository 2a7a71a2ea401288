from pathlib import Path
from typing import List

import pytest

from flightcode_classifier.data_models import FeatureRecord, TrainConfig
from flightcode_classifier.train import train_model

TRAINING_ROWS = [
    ("QFA401-B738", "737"),
    ("VOZ812-B738", "737"),
    ("JST22-73H", "737"),
    ("QFA431-B738", "737"),
    ("VOZ1015-73H", "737"),
    ("JST501-A320", "320"),
    ("JST733-A320", "320"),
    ("TGW12-A320", "320"),
    ("JST809-A320", "320"),
    ("QLK12-E190", "E90"),
    ("QLK204-E190", "E90"),
    ("VOZ1191-E190", "E90"),
]

EVALUATION_ROWS = [
    ("QFA409-B738", "737"),
    ("VOZ901-73H", "737"),
    ("JST515-A320", "320"),
    ("TGW77-A320", "320"),
    ("QLK230-E190", "E90"),
    ("QFA999-B744", "744"),
]


def _records(rows) -> List[FeatureRecord]:
    return [FeatureRecord(flight_code=code, iata_code=label) for code, label in rows]


def _write_csv(path: Path, rows) -> Path:
    lines = ["FlightCode,IATACode"] + [f"{code},{label}" for code, label in rows]
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def training_records() -> List[FeatureRecord]:
    return _records(TRAINING_ROWS)


@pytest.fixture
def evaluation_records() -> List[FeatureRecord]:
    return _records(EVALUATION_ROWS)


@pytest.fixture(scope="session")
def trained_model():
    """One fitted model shared by read-only tests."""
    return train_model(_records(TRAINING_ROWS), config=TrainConfig(random_state=0))


@pytest.fixture
def training_csv(tmp_path) -> Path:
    return _write_csv(tmp_path / "FlightCodes.csv", TRAINING_ROWS)


@pytest.fixture
def evaluation_csv(tmp_path) -> Path:
    return _write_csv(tmp_path / "MoreFlightCodes.csv", EVALUATION_ROWS)
