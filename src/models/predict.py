from enum import Enum
from typing import Mapping, Sequence, Union

import torch

from src.models.encoder import FEATURE_COLS
from src.models.errors import ModelNotReadyError
from src.models.network import HeartDiseaseModel
from src.models.train import DECISION_THRESHOLD


PredictionInput = Union[Sequence[float], Mapping[str, float]]


class Classification(str, Enum):
    POSITIVE = "Positive for Cardiovascular Disease"
    NEGATIVE = "Negative for Cardiovascular Disease"


def _as_row(values: PredictionInput) -> torch.Tensor:
    if isinstance(values, Mapping):
        missing = [col for col in FEATURE_COLS if col not in values]
        if missing:
            raise ValueError(f"Missing input fields: {', '.join(missing)}")
        values = [values[col] for col in FEATURE_COLS]

    row = [float(v) for v in values]
    if len(row) != len(FEATURE_COLS):
        raise ValueError(
            f"Expected {len(FEATURE_COLS)} feature values, got {len(row)}"
        )
    return torch.tensor([row], dtype=torch.float32)


def predict_proba(model: HeartDiseaseModel, values: PredictionInput) -> float:
    if model is None or not model.is_trained:
        raise ModelNotReadyError("Model has not completed a training epoch")

    return float(model.predict_proba(_as_row(values))[0].item())


def classify(probability: float) -> Classification:
    if probability > DECISION_THRESHOLD:
        return Classification.POSITIVE
    return Classification.NEGATIVE


def predict(model: HeartDiseaseModel, values: PredictionInput) -> Classification:
    """Classify one already-coded record; ties at the threshold are negative."""
    return classify(predict_proba(model, values))
