import httpx                                 # Used to fake the CSV download
import numpy as np
import pytest                                # Pytest framework for testing and assertions

from src.models import model_utils
from src.models.errors import EmptyDatasetError, EncodingError
from src.models.model_utils import build_dataset, fetch_data, load_data, split_data


def test_load_data_success(tmp_path, csv_text):
    """Test loading data with every required column present"""
    file_path = tmp_path / "heart.csv"      # Create a temporary file path using pytest fixture
    file_path.write_text(csv_text + "\n", encoding="utf-8")  # Trailing blank line is ignored

    records = load_data(file_path)          # Call load_data function with CSV file path

    assert len(records) == 60
    assert records[0]["Sex"] in ("M", "F")  # Values stay as raw strings
    assert isinstance(records[0]["Age"], str)


def test_load_data_from_bytes(csv_text):
    records = load_data(csv_text.encode("utf-8"))

    assert len(records) == 60


def test_load_data_missing_column(tmp_path):
    """Test error raised when the label column is missing"""
    file_path = tmp_path / "data.csv"
    file_path.write_text("Age,Sex\n60,M\n", encoding="utf-8")

    with pytest.raises(ValueError):          # Expect ValueError due to missing columns
        load_data(file_path)


def test_fetch_data(monkeypatch, csv_text):
    def fake_get(url, **kwargs):
        return httpx.Response(
            200,
            content=csv_text.encode("utf-8"),
            request=httpx.Request("GET", url),
        )

    monkeypatch.setattr(model_utils.httpx, "get", fake_get)

    records = fetch_data("http://data.test/heart.csv")

    assert len(records) == 60


def test_fetch_data_http_error(monkeypatch):
    def fake_get(url, **kwargs):
        return httpx.Response(404, request=httpx.Request("GET", url))

    monkeypatch.setattr(model_utils.httpx, "get", fake_get)

    with pytest.raises(httpx.HTTPStatusError):
        fetch_data("http://data.test/missing.csv")


def test_build_dataset_shapes(records):
    dataset = build_dataset(records)

    assert len(dataset.features) == len(dataset.labels) == len(records)
    assert dataset.features.shape == (60, 11)
    assert not dataset.features.flags.writeable  # Dataset is immutable once built


def test_build_dataset_keeps_order(records):
    dataset = build_dataset(records)

    expected = [float(r["HeartDisease"]) for r in records]
    np.testing.assert_array_equal(dataset.labels, expected)


def test_build_dataset_empty():
    with pytest.raises(EmptyDatasetError):
        build_dataset([])


def test_build_dataset_reports_position(records):
    records[3] = dict(records[3], RestingECG="Abnormal")

    with pytest.raises(EncodingError) as excinfo:
        build_dataset(records)

    assert excinfo.value.position == 3
    assert excinfo.value.field == "RestingECG"
    assert "record 3" in str(excinfo.value)


def test_split_data_takes_trailing_slice(dataset):
    train, val = split_data(dataset, 0.2)

    assert len(train) == 48
    assert len(val) == 12
    np.testing.assert_array_equal(val.features, dataset.features[48:])


def test_split_data_without_validation(dataset):
    train, val = split_data(dataset, 0.0)

    assert len(train) == 60
    assert len(val) == 0
