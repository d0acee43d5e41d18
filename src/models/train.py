"""
Training loop for the heart disease classifier.

Mirrors the usual `fit(x, y, epochs, batch_size, validation_split)` contract:
the trailing `validation_split` fraction of the dataset is held out, training
runs over shuffled mini-batches and early stopping watches validation loss.
"""

import logging
import math
from typing import Callable, Dict, List, Literal, Optional, Tuple

import torch
from pydantic import BaseModel, Field

from src.models.errors import EmptyDatasetError, TrainingCancelled
from src.models.model_utils import Dataset, split_data
from src.models.network import HeartDiseaseModel


logger = logging.getLogger(__name__)

DECISION_THRESHOLD = 0.5

EpochLogs = Dict[str, float]
EpochCallback = Callable[[int, EpochLogs], None]


class TrainingConfig(BaseModel):
    epochs: int = Field(50, ge=1)
    batch_size: int = Field(32, ge=1)
    validation_split: float = Field(0.2, ge=0.0, lt=1.0)
    monitor: Literal["val_loss"] = "val_loss"
    patience: int = Field(10, ge=0)
    shuffle: bool = True
    seed: Optional[int] = None


def _count_correct(probs: torch.Tensor, targets: torch.Tensor) -> int:
    predicted = (probs > DECISION_THRESHOLD).float()
    return int((predicted == targets).sum().item())


def _to_tensors(dataset: Dataset) -> Tuple[torch.Tensor, torch.Tensor]:
    X = torch.tensor(dataset.features, dtype=torch.float32)
    y = torch.tensor(dataset.labels, dtype=torch.float32)
    return X, y


def evaluate(model: HeartDiseaseModel, dataset: Dataset) -> Tuple[float, float]:
    """Return (loss, accuracy) of the model on a dataset, without updating it."""
    X, y = _to_tensors(dataset)
    probs = model.predict_proba(X)
    loss = model.criterion(probs, y).item()
    return loss, _count_correct(probs, y) / len(y)


def train(
    model: HeartDiseaseModel,
    dataset: Dataset,
    config: Optional[TrainingConfig] = None,
    on_epoch_end: Optional[EpochCallback] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> List[float]:
    """Fit the model in place and return per-epoch training accuracy (0-1).

    Weights are not rolled back on early stopping; the model keeps the
    weights of the last epoch that ran.
    """
    config = config or TrainingConfig()

    train_set, val_set = split_data(dataset, config.validation_split)
    if len(train_set) == 0:
        raise EmptyDatasetError("Validation split leaves no training records")

    X_train, y_train = _to_tensors(train_set)
    n_train = len(y_train)

    has_validation = len(val_set) > 0
    if not has_validation:
        logger.warning("Validation set is empty; early stopping disabled")

    logger.info(
        "Training on %d records, validating on %d", n_train, len(val_set)
    )

    generator = torch.Generator()
    if config.seed is not None:
        generator.manual_seed(config.seed)
    else:
        generator.seed()

    history: List[float] = []
    best_loss = math.inf
    wait = 0

    for epoch in range(config.epochs):
        model.net.train()

        if config.shuffle:
            order = torch.randperm(n_train, generator=generator)
        else:
            order = torch.arange(n_train)

        running_loss = 0.0
        correct = 0

        for start in range(0, n_train, config.batch_size):
            if should_stop is not None and should_stop():
                raise TrainingCancelled(f"Training cancelled during epoch {epoch + 1}")

            batch = order[start:start + config.batch_size]
            inputs, targets = X_train[batch], y_train[batch]

            model.optimizer.zero_grad()
            probs = model.forward(inputs)
            loss = model.criterion(probs, targets)
            loss.backward()
            model.optimizer.step()

            running_loss += loss.item() * len(batch)
            correct += _count_correct(probs.detach(), targets)

        model.epochs_trained += 1

        logs: EpochLogs = {
            "loss": running_loss / n_train,
            "accuracy": correct / n_train,
        }
        if has_validation:
            logs["val_loss"], logs["val_accuracy"] = evaluate(model, val_set)

        history.append(logs["accuracy"])
        logger.info(
            "epoch=%d %s",
            epoch + 1,
            " ".join(f"{key}={value:.4f}" for key, value in logs.items()),
        )

        if on_epoch_end is not None:
            on_epoch_end(epoch, logs)

        if not has_validation:
            continue

        if logs[config.monitor] < best_loss:
            best_loss = logs[config.monitor]
            wait = 0
        else:
            wait += 1
            if wait >= config.patience:
                logger.info(
                    "Early stopping after epoch %d: %s has not improved for %d epochs",
                    epoch + 1,
                    config.monitor,
                    wait,
                )
                break

    return history
