"""
Owned lifecycle for the single trained model.

A TrainingContext is created at startup, trains once on a background worker,
and publishes its state at epoch and completion boundaries. Readers only ever
see snapshots, never a half-updated model.
"""

import logging
import threading
from concurrent import futures
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from src.models.errors import ModelNotReadyError, TrainingCancelled
from src.models.model_utils import Dataset
from src.models.network import HeartDiseaseModel, create_model
from src.models.predict import Classification, PredictionInput, predict, predict_proba
from src.models.train import EpochCallback, EpochLogs, TrainingConfig, train


logger = logging.getLogger(__name__)


class TrainingState(str, Enum):
    IDLE = "idle"
    TRAINING = "training"
    READY = "ready"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class TrainingStatus:
    state: TrainingState
    history: Tuple[float, ...]
    error: Optional[str] = None

    @property
    def model_ready(self) -> bool:
        return self.state is TrainingState.READY

    @property
    def epochs_run(self) -> int:
        return len(self.history)


class TrainingContext:
    def __init__(
        self,
        config: Optional[TrainingConfig] = None,
        model_factory: Optional[Callable[[], HeartDiseaseModel]] = None,
        on_epoch_end: Optional[EpochCallback] = None,
    ):
        self.config = config or TrainingConfig()
        self._model_factory = model_factory or (lambda: create_model(seed=self.config.seed))
        self._on_epoch_end = on_epoch_end

        self._lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._state = TrainingState.IDLE
        self._history: Tuple[float, ...] = ()
        self._model: Optional[HeartDiseaseModel] = None
        self._error: Optional[str] = None
        self._future: Optional[Future] = None

    def start(self, dataset: Dataset) -> Future:
        with self._lock:
            if self._state is not TrainingState.IDLE:
                raise RuntimeError(f"Training already {self._state.value}")
            self._state = TrainingState.TRAINING

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="trainer")
        self._future = executor.submit(self._run, dataset)
        executor.shutdown(wait=False)
        return self._future

    def _publish_epoch(self, epoch: int, logs: EpochLogs) -> None:
        with self._lock:
            self._history = self._history + (logs["accuracy"],)

        if self._on_epoch_end is not None:
            self._on_epoch_end(epoch, logs)

    def _run(self, dataset: Dataset) -> List[float]:
        try:
            model = self._model_factory()
            history = train(
                model,
                dataset,
                self.config,
                on_epoch_end=self._publish_epoch,
                should_stop=self._cancel_event.is_set,
            )
        except TrainingCancelled:
            logger.warning("Training cancelled; discarding partially trained model")
            with self._lock:
                self._state = TrainingState.CANCELLED
            raise
        except Exception as exc:
            logger.exception("Training failed")
            with self._lock:
                if not self._cancel_event.is_set():
                    self._state = TrainingState.FAILED
                    self._error = str(exc)
            raise

        with self._lock:
            if self._cancel_event.is_set():
                self._state = TrainingState.CANCELLED
                raise TrainingCancelled("Training cancelled")
            self._model = model
            self._history = tuple(history)
            self._state = TrainingState.READY

        logger.info("Training finished after %d epochs", len(history))
        return history

    def cancel(self) -> None:
        with self._lock:
            if self._state not in (TrainingState.IDLE, TrainingState.TRAINING):
                logger.info("Training already %s; nothing to cancel", self._state.value)
                return
            self._cancel_event.set()
            self._state = TrainingState.CANCELLED
            self._model = None

    def wait(self, timeout: Optional[float] = None) -> TrainingStatus:
        """Block until training finishes (or timeout) and return the status."""
        if self._future is not None:
            futures.wait([self._future], timeout=timeout)
        return self.status()

    def status(self) -> TrainingStatus:
        with self._lock:
            return TrainingStatus(self._state, self._history, self._error)

    @property
    def model(self) -> HeartDiseaseModel:
        with self._lock:
            if self._state is TrainingState.CANCELLED:
                raise TrainingCancelled("Training was cancelled")
            if self._state is not TrainingState.READY or self._model is None:
                raise ModelNotReadyError("Model is still training, please wait")
            return self._model

    def predict_proba(self, values: PredictionInput) -> float:
        return predict_proba(self.model, values)

    def predict(self, values: PredictionInput) -> Classification:
        return predict(self.model, values)
