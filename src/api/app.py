import os
import time
import json
import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import Response, JSONResponse
from pydantic import ValidationError
from prometheus_client import Counter, Histogram, generate_latest

from src.api.schemas import (
    HeartDiseaseRequest,
    PredictionResponse,
    TrainingStatusResponse,
)
from src.models.context import TrainingContext
from src.models.errors import HeartDiseaseError, ModelNotReadyError, TrainingCancelled
from src.models.model_utils import build_dataset, fetch_data, load_data
from src.models.predict import classify
from src.models.train import TrainingConfig


# =================================================
# Environment
# =================================================
BASE_DIR = os.path.dirname(
    os.path.dirname(
        os.path.dirname(__file__)
    )
)
ENV_PATH = os.path.join(BASE_DIR, ".env")
load_dotenv(dotenv_path=ENV_PATH)

APP_NAME = os.getenv("APP_NAME", "Cardiovascular Disease Prediction")
DATA_PATH = os.getenv("DATA_PATH")
DATA_URL = os.getenv("DATA_URL")


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else None


TRAINING_CONFIG = TrainingConfig(
    epochs=int(os.getenv("TRAIN_EPOCHS", 50)),
    batch_size=int(os.getenv("TRAIN_BATCH_SIZE", 32)),
    validation_split=float(os.getenv("TRAIN_VALIDATION_SPLIT", 0.2)),
    patience=int(os.getenv("TRAIN_PATIENCE", 10)),
    seed=_optional_int("TRAIN_SEED"),
)


# =================================================
# Structured JSON logging
# =================================================
class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "service": APP_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record)


handler = logging.StreamHandler()
handler.setFormatter(JsonFormatter())

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)
logger.handlers = [handler]
logger.propagate = False

# Pipeline modules log under "src.models.*"
pipeline_logger = logging.getLogger("src.models")
pipeline_logger.setLevel(logging.INFO)
pipeline_logger.handlers = [handler]
pipeline_logger.propagate = False


# =================================================
# Prometheus metrics
# =================================================
REQUEST_COUNT = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "api_request_latency_seconds",
    "API request latency",
    ["endpoint"],
)

PREDICTIONS_TOTAL = Counter(
    "model_predictions_total",
    "Total number of predictions",
    ["result"],
)

PREDICTION_ERRORS_TOTAL = Counter(
    "model_prediction_errors_total",
    "Total prediction errors",
)

PREDICTION_LATENCY = Histogram(
    "model_prediction_latency_seconds",
    "Prediction latency",
)

TRAINING_EPOCHS_TOTAL = Counter(
    "model_training_epochs_total",
    "Total training epochs completed",
)


# =================================================
# FastAPI app
# =================================================
app = FastAPI(title=APP_NAME)


# =================================================
# Training context (single owned model)
# =================================================
def _record_epoch(epoch: int, logs: Dict[str, float]) -> None:
    TRAINING_EPOCHS_TOTAL.inc()


context = TrainingContext(TRAINING_CONFIG, on_epoch_end=_record_epoch)


def load_records():
    if DATA_PATH:
        return load_data(os.path.join(BASE_DIR, DATA_PATH))
    if DATA_URL:
        logger.info("Fetching training data from %s", DATA_URL)
        return fetch_data(DATA_URL)
    return None


# =================================================
# Startup: build dataset and start training
# =================================================
@app.on_event("startup")
def start_training():
    records = load_records()
    if records is None:
        logger.warning("DATA_PATH / DATA_URL not set – API running without model")
        return

    try:
        dataset = build_dataset(records)
    except HeartDiseaseError:
        logger.exception("Could not build training dataset")
        raise

    context.start(dataset)
    logger.info("Training started on %d records", len(dataset))


@app.on_event("shutdown")
def stop_training():
    context.cancel()


# =================================================
# Middleware: logging + metrics
# =================================================
@app.middleware("http")
async def log_and_metrics(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=request.url.path,
        status=str(response.status_code),
    ).inc()

    REQUEST_LATENCY.labels(
        endpoint=request.url.path
    ).observe(duration)

    logger.info(
        "%s %s status=%s latency=%.4fs",
        request.method,
        request.url.path,
        response.status_code,
        duration,
    )

    return response


# =================================================
# Health check
# =================================================
@app.get("/")
def health():
    return {"status": "ok"}


# =================================================
# Training status
# =================================================
@app.get("/status", response_model=TrainingStatusResponse)
def status():
    snapshot = context.status()
    return TrainingStatusResponse(
        state=snapshot.state.value,
        model_ready=snapshot.model_ready,
        training_accuracy=list(snapshot.history),
        epochs_run=snapshot.epochs_run,
        error=snapshot.error,
    )


# =================================================
# Prediction endpoint
# =================================================
@app.post("/predict", response_model=PredictionResponse)
async def predict(request: Request):
    start_time = time.time()

    try:
        body = await request.json()
        data = HeartDiseaseRequest(**body)
    except ValidationError as exc:
        PREDICTION_ERRORS_TOTAL.inc()
        return JSONResponse(
            status_code=422,
            content={"details": json.loads(exc.json())},
        )
    except Exception:
        PREDICTION_ERRORS_TOTAL.inc()
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_json"},
        )

    try:
        probability = context.predict_proba(data.to_features())
    except TrainingCancelled:
        PREDICTION_ERRORS_TOTAL.inc()
        raise HTTPException(
            status_code=503,
            detail="training_cancelled",
        )
    except ModelNotReadyError:
        PREDICTION_ERRORS_TOTAL.inc()
        raise HTTPException(
            status_code=503,
            detail="model_not_ready",
        )
    except Exception:
        PREDICTION_ERRORS_TOTAL.inc()
        logger.exception("Prediction failed")
        raise HTTPException(
            status_code=500,
            detail="prediction_failed",
        )

    label = classify(probability)
    PREDICTIONS_TOTAL.labels(result=label.name.lower()).inc()
    PREDICTION_LATENCY.observe(time.time() - start_time)

    logger.info(
        json.dumps(
            {
                "event": "prediction",
                "prediction": label.value,
                "probability": round(probability, 4),
            }
        )
    )

    return PredictionResponse(
        prediction=label.value,
        probability=round(probability, 4),
    )


# =================================================
# Metrics endpoint
# =================================================
@app.get("/metrics")
def metrics():
    return Response(
        generate_latest(),
        media_type="text/plain",
    )
