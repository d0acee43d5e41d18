import random                                   # Deterministic synthetic record generation

import pytest                                   # Pytest fixtures

from src.models.context import TrainingContext
from src.models.model_utils import build_dataset
from src.models.train import TrainingConfig


CSV_HEADER = (
    "Age,Sex,ChestPainType,RestingBP,Cholesterol,FastingBS,"
    "RestingECG,MaxHR,ExerciseAngina,Oldpeak,ST_Slope,HeartDisease"
)


@pytest.fixture
def sample_record():
    """First row of the public heart failure prediction dataset"""
    return {
        "Age": "40",
        "Sex": "M",
        "ChestPainType": "ATA",
        "RestingBP": "140",
        "Cholesterol": "289",
        "FastingBS": "0",
        "RestingECG": "Normal",
        "MaxHR": "172",
        "ExerciseAngina": "N",
        "Oldpeak": "0",
        "ST_Slope": "Up",
        "HeartDisease": "0",
    }


@pytest.fixture
def records():
    rng = random.Random(7)                      # Fixed seed so every run sees the same rows
    rows = []
    for _ in range(60):
        sick = rng.random() < 0.5
        rows.append({
            "Age": str(rng.randint(30, 75)),
            "Sex": rng.choice(["M", "F"]),
            "ChestPainType": "ASY" if sick else rng.choice(["ATA", "NAP", "TA"]),
            "RestingBP": str(rng.randint(100, 170)),
            "Cholesterol": str(rng.randint(150, 320)),
            "FastingBS": str(int(sick and rng.random() < 0.4)),
            "RestingECG": rng.choice(["Normal", "ST", "LVH"]),
            "MaxHR": str(rng.randint(100, 135) if sick else rng.randint(140, 190)),
            "ExerciseAngina": "Y" if sick else "N",
            "Oldpeak": f"{rng.uniform(1.0, 3.0) if sick else rng.uniform(0.0, 0.8):.1f}",
            "ST_Slope": "Flat" if sick else "Up",
            "HeartDisease": str(int(sick)),
        })
    return rows


@pytest.fixture
def csv_text(records):
    lines = [CSV_HEADER]
    for row in records:
        lines.append(",".join(row[col] for col in CSV_HEADER.split(",")))
    return "\n".join(lines) + "\n"


@pytest.fixture
def dataset(records):
    return build_dataset(records)


@pytest.fixture
def trained_context(dataset):
    context = TrainingContext(TrainingConfig(epochs=2, seed=0))
    context.start(dataset)
    context.wait(timeout=120)
    return context
