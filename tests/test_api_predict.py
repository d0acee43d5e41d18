import pytest                                  # Pytest framework for writing and running tests
from httpx import AsyncClient                  # Async HTTP client for testing FastAPI endpoints
from httpx import ASGITransport                # ASGI transport to run FastAPI app in-memory

from src.api import app as app_module          # Module holding the training context
from src.api.app import app                    # Import the FastAPI application instance
from src.models.context import TrainingContext
from src.models.train import TrainingConfig


PAYLOAD = {                                    # Valid request payload with all coded fields
    "age": 40,
    "sex": 1,
    "chest_pain_type": 0,
    "resting_bp": 140,
    "cholesterol": 289,
    "fasting_bs": 0,
    "resting_ecg": 0,
    "max_hr": 172,
    "exercise_angina": 0,
    "oldpeak": 0,
    "st_slope": 0,
}

LABELS = [
    "Positive for Cardiovascular Disease",
    "Negative for Cardiovascular Disease",
]


async def _post(payload):
    transport = ASGITransport(app=app)         # Create in-memory transport using FastAPI app

    async with AsyncClient(                    # Initialize async HTTP client
        transport=transport,
        base_url="http://test"
    ) as client:
        return await client.post("/predict", json=payload)


async def _get(path):
    transport = ASGITransport(app=app)

    async with AsyncClient(
        transport=transport,
        base_url="http://test"
    ) as client:
        return await client.get(path)


@pytest.mark.asyncio                           # Marks this test as asynchronous
async def test_predict_success(monkeypatch, trained_context):
    monkeypatch.setattr(app_module, "context", trained_context)  # Inject a trained model

    response = await _post(PAYLOAD)            # Send POST request to /predict

    assert response.status_code == 200          # Expect successful HTTP response
    body = response.json()                     # Parse JSON response body

    assert body["prediction"] in LABELS        # One of the two fixed labels
    assert 0.0 <= body["probability"] <= 1.0   # Sigmoid output is a valid probability


@pytest.mark.asyncio
async def test_predict_model_not_ready(monkeypatch):
    monkeypatch.setattr(app_module, "context", TrainingContext())  # Training not started

    response = await _post(PAYLOAD)

    assert response.status_code == 503          # Service unavailable until training finishes
    assert response.json()["detail"] == "model_not_ready"


@pytest.mark.asyncio
async def test_predict_training_cancelled(monkeypatch):
    context = TrainingContext()
    context.cancel()
    monkeypatch.setattr(app_module, "context", context)

    response = await _post(PAYLOAD)

    assert response.status_code == 503
    assert response.json()["detail"] == "training_cancelled"


@pytest.mark.asyncio                           # Marks this test as asynchronous
async def test_predict_missing_field():
    payload = {                                # Incomplete payload (missing required fields)
        "age": 63,
        "sex": 1
    }

    response = await _post(payload)            # Send invalid request

    assert response.status_code == 422          # Expect validation error (Unprocessable Entity)


@pytest.mark.asyncio                           # Marks this test as asynchronous
async def test_predict_out_of_range():
    payload = dict(PAYLOAD, chest_pain_type=7)  # No chest pain type is coded as 7

    response = await _post(payload)            # Send invalid request

    assert response.status_code == 422          # Expect validation error due to invalid code


@pytest.mark.asyncio
async def test_status_reports_history(monkeypatch, trained_context):
    monkeypatch.setattr(app_module, "context", trained_context)

    response = await _get("/status")

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "ready"
    assert body["model_ready"] is True
    assert body["epochs_run"] == len(body["training_accuracy"]) == 2


@pytest.mark.asyncio
async def test_status_before_training(monkeypatch):
    monkeypatch.setattr(app_module, "context", TrainingContext())

    response = await _get("/status")

    assert response.json() == {
        "state": "idle",
        "model_ready": False,
        "training_accuracy": [],
        "epochs_run": 0,
        "error": None,
    }


@pytest.mark.asyncio
async def test_health_and_metrics():
    assert (await _get("/")).json() == {"status": "ok"}

    response = await _get("/metrics")

    assert response.status_code == 200
    assert "model_predictions_total" in response.text


def test_startup_trains_module_context(monkeypatch, tmp_path, csv_text):
    data_path = tmp_path / "heart.csv"
    data_path.write_text(csv_text, encoding="utf-8")
    context = TrainingContext(TrainingConfig(epochs=1, seed=0))

    monkeypatch.setattr(app_module, "DATA_PATH", str(data_path))  # Absolute path wins over BASE_DIR
    monkeypatch.setattr(app_module, "context", context)

    app_module.start_training()                # Startup hook starts the existing context
    status = context.wait(timeout=120)

    assert app_module.context is context       # No new context is created at startup
    assert status.model_ready
