from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from fastapi import FastAPI, HTTPException

from .data_models import PredictRequest, PredictResponse
from .errors import InvalidInput, PersistenceFailure
from .model import TrainedModel
from .persistence import load_model

app = FastAPI(title="Flight Code Classifier API", version="1.0")


@lru_cache(maxsize=4)
def _model(model_path: str) -> TrainedModel:
    # Loaded models are read-only, so one instance serves every request
    return load_model(model_path)


@app.post("/predict", response_model=List[PredictResponse])
def predict(req: PredictRequest):
    if not Path(req.model_path).exists():
        raise HTTPException(400, "model_path not found")
    try:
        predictions = _model(req.model_path).predict_many(req.flight_codes)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=str(e))
    return [
        PredictResponse(flight_code=code, predicted_label=p.predicted_label, confidence=p.confidence)
        for code, p in zip(req.flight_codes, predictions)
    ]
