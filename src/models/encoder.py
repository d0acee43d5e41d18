import math
from typing import Dict, List, Mapping, Tuple

from src.models.errors import EncodingError


TARGET_COL = "HeartDisease"

FEATURE_COLS = [
    "Age",
    "Sex",
    "ChestPainType",
    "RestingBP",
    "Cholesterol",
    "FastingBS",
    "RestingECG",
    "MaxHR",
    "ExerciseAngina",
    "Oldpeak",
    "ST_Slope",
]

CATEGORY_CODES: Dict[str, Dict[str, int]] = {
    "Sex": {"M": 1, "F": 0},
    "ChestPainType": {"ATA": 0, "NAP": 1, "ASY": 2, "TA": 3},
    "RestingECG": {"Normal": 0, "ST": 1, "LVH": 2},
    "ExerciseAngina": {"Y": 1, "N": 0},
    "ST_Slope": {"Up": 0, "Flat": 1, "Down": 2},
}

NUMERIC_COLS = [col for col in FEATURE_COLS if col not in CATEGORY_CODES]


def _parse_float(field: str, value) -> float:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        raise EncodingError(field, value, reason="not a number") from None

    if math.isnan(number):
        raise EncodingError(field, value, reason="not a number")
    return number


def _lookup_code(field: str, value) -> float:
    token = str(value).strip() if value is not None else value
    try:
        return float(CATEGORY_CODES[field][token])
    except KeyError:
        raise EncodingError(field, value) from None


def encode_features(record: Mapping[str, object]) -> List[float]:
    vector = []
    for col in FEATURE_COLS:
        if col not in record:
            raise EncodingError(col, None, reason="missing field")
        if col in CATEGORY_CODES:
            vector.append(_lookup_code(col, record[col]))
        else:
            vector.append(_parse_float(col, record[col]))
    return vector


def encode_label(record: Mapping[str, object]) -> float:
    if TARGET_COL not in record:
        raise EncodingError(TARGET_COL, None, reason="missing field")
    label = _parse_float(TARGET_COL, record[TARGET_COL])
    if label not in (0.0, 1.0):
        raise EncodingError(TARGET_COL, record[TARGET_COL], reason="label must be 0 or 1")
    return label


def encode(record: Mapping[str, object]) -> Tuple[List[float], float]:
    """Map one raw record to its 11-value feature vector and binary label.

    Categorical fields go through the fixed code tables in CATEGORY_CODES,
    numeric fields are parsed as floats. Unknown tokens and unparseable
    numbers raise EncodingError instead of turning into NaN.
    """
    return encode_features(record), encode_label(record)
