"""
Unit tests for the trainer and the trained model.
"""

import pytest
from sklearn.pipeline import Pipeline

from flightcode_classifier.data_models import FeatureRecord, Prediction
from flightcode_classifier.errors import InvalidInput, PersistenceFailure, TrainingFailure, UnknownCustomMapping
from flightcode_classifier.features import PIPELINE_STAGES, pipeline_stages
from flightcode_classifier.mappings import FunctionMapper, MappingRegistry
from flightcode_classifier.model import TrainedModel
from flightcode_classifier.persistence import load_model
from flightcode_classifier.train import train_model


class TestTrainModel:
    def test_two_record_scenario(self):
        records = [
            FeatureRecord(flight_code="B738-ABC", iata_code="737"),
            FeatureRecord(flight_code="A320-XYZ", iata_code="320"),
        ]
        model = train_model(records)

        assert set(model.labels) == {"737", "320"}
        assert len(model.labels) == 2
        assert model.special_features(["B738-DEF"]) == [1.0]

        prediction = model.predict(FeatureRecord(flight_code="B738-DEF", iata_code="737"))
        assert prediction.predicted_label == "737"
        assert len(prediction.score) == 2

    def test_accepts_a_generator(self, training_records):
        model = train_model(r for r in training_records)
        assert model.card.train_rows == len(training_records)

    def test_empty_dataset(self):
        with pytest.raises(TrainingFailure, match="empty"):
            train_model([])

    def test_single_label_vocabulary(self):
        records = [
            FeatureRecord(flight_code="B738-ABC", iata_code="737"),
            FeatureRecord(flight_code="B738-XYZ", iata_code="737"),
        ]
        with pytest.raises(TrainingFailure, match="at least 2 distinct labels"):
            train_model(records)

    def test_blank_flight_code_rejected_like_prediction(self, training_records):
        records = list(training_records) + [FeatureRecord(flight_code="", iata_code="737")]
        with pytest.raises(InvalidInput, match="flight code is missing"):
            train_model(records)

    def test_non_boolean_mapping_rejected(self, training_records):
        registry = MappingRegistry()
        registry.register(FunctionMapper("FlightCodeMapping", lambda v: 0.5, "FlightCode", "SpecialFeature"))
        with pytest.raises(InvalidInput, match="non-boolean"):
            train_model(training_records, registry=registry)

    def test_unregistered_mapping(self, training_records):
        with pytest.raises(UnknownCustomMapping):
            train_model(training_records, registry=MappingRegistry())

    def test_card_contents(self, trained_model):
        card = trained_model.card
        assert card.labels == ["320", "737", "E90"]
        assert card.custom_mappings == ["FlightCodeMapping"]
        assert card.stages == trained_model.stages
        assert card.train_rows == 12
        assert card.training_seconds >= 0.0

    def test_saves_when_destination_given(self, training_records, tmp_path):
        path = tmp_path / "models" / "savedmodel.joblib"
        model = train_model(training_records, destination=path)
        assert path.exists()
        assert load_model(path).labels == model.labels

    def test_save_failure_keeps_model(self, training_records, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")

        with pytest.raises(PersistenceFailure) as excinfo:
            train_model(training_records, destination=blocker / "savedmodel.joblib")

        model = excinfo.value.model
        assert isinstance(model, TrainedModel)
        assert model.predict("QFA401-B738").predicted_label in model.labels


class TestTrainedModel:
    def test_vocabulary_frozen_from_training(self, trained_model):
        assert trained_model.labels == ("320", "737", "E90")

    def test_score_vector_matches_vocabulary(self, trained_model):
        prediction = trained_model.predict("QFA409-B738")
        assert isinstance(prediction, Prediction)
        assert len(prediction.score) == len(trained_model.labels)
        assert prediction.confidence == max(prediction.score)
        assert sum(prediction.score) == pytest.approx(1.0)

    def test_predicts_training_patterns(self, trained_model):
        labels = [p.predicted_label for p in trained_model.predict_many(["QFA401-B738", "JST501-A320", "QLK12-E190"])]
        assert labels == ["737", "320", "E90"]

    def test_predict_many_empty(self, trained_model):
        assert trained_model.predict_many([]) == []

    def test_missing_flight_code(self, trained_model):
        with pytest.raises(InvalidInput):
            trained_model.predict(None)

    def test_stage_listing(self, trained_model):
        assert trained_model.stages[0] == "label_encode"
        assert trained_model.stages[-1] == "label_decode"
        assert trained_model.custom_mappings == ["FlightCodeMapping"]

    def test_stage_listing_reads_the_pipeline(self, trained_model):
        assert trained_model.stages == PIPELINE_STAGES
        classifier = trained_model.pipeline.named_steps["classifier"]
        bare = Pipeline([("classifier", classifier)])
        assert pipeline_stages(bare) == ["label_encode", "classifier", "label_decode"]
