import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Tuple, Union

import httpx
import numpy as np
import pandas as pd

from src.models.encoder import FEATURE_COLS, TARGET_COL, encode
from src.models.errors import EmptyDatasetError, EncodingError


logger = logging.getLogger(__name__)

REQUIRED_COLS = FEATURE_COLS + [TARGET_COL]

RawRecord = Dict[str, str]


@dataclass(frozen=True)
class Dataset:
    features: np.ndarray
    labels: np.ndarray

    def __len__(self) -> int:
        return len(self.labels)


def load_data(source: Union[str, Path, bytes]) -> List[RawRecord]:
    """Parse a header-bearing CSV into raw records, every cell kept as text."""
    if isinstance(source, bytes):
        source = io.StringIO(source.decode("utf-8"))

    df = pd.read_csv(
        source,
        dtype=str,
        keep_default_na=False,
        encoding="utf-8",
    )

    missing = [col for col in REQUIRED_COLS if col not in df.columns]
    if missing:
        raise ValueError(f"Required columns missing: {', '.join(missing)}")

    return df[REQUIRED_COLS].to_dict(orient="records")


def fetch_data(url: str, timeout: float = 30.0) -> List[RawRecord]:
    response = httpx.get(url, timeout=timeout, follow_redirects=True)
    response.raise_for_status()
    return load_data(response.content)


def build_dataset(records: Sequence[RawRecord]) -> Dataset:
    if len(records) == 0:
        raise EmptyDatasetError("No records to build a dataset from")

    features = []
    labels = []
    for position, record in enumerate(records):
        try:
            vector, label = encode(record)
        except EncodingError as exc:
            raise exc.at(position) from exc
        features.append(vector)
        labels.append(label)

    X = np.asarray(features, dtype=np.float32)
    y = np.asarray(labels, dtype=np.float32)
    X.setflags(write=False)
    y.setflags(write=False)

    logger.info("Built dataset with %d records", len(y))
    return Dataset(features=X, labels=y)


def split_data(dataset: Dataset, validation_split: float) -> Tuple[Dataset, Dataset]:
    """Split off the trailing `validation_split` fraction as validation data.

    No shuffling: the last records in file order become the validation set.
    """
    if not 0.0 <= validation_split < 1.0:
        raise ValueError("validation_split must be in [0, 1)")

    split_at = int(np.floor(len(dataset) * (1.0 - validation_split)))
    train = Dataset(dataset.features[:split_at], dataset.labels[:split_at])
    val = Dataset(dataset.features[split_at:], dataset.labels[split_at:])
    return train, val
