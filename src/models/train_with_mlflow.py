import os

import matplotlib
import mlflow
import numpy as np
import torch
from dotenv import load_dotenv

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from sklearn.metrics import (  # noqa: E402
    accuracy_score,
    precision_score,
    recall_score,
    f1_score,
    roc_auc_score,
    confusion_matrix,
    ConfusionMatrixDisplay,
)

from src.models.model_utils import build_dataset, load_data, split_data  # noqa: E402
from src.models.network import create_model  # noqa: E402
from src.models.train import DECISION_THRESHOLD, TrainingConfig, train  # noqa: E402


# ---------------------------------------------------
# Paths & MLflow configuration
# ---------------------------------------------------
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
load_dotenv(dotenv_path=os.path.join(BASE_DIR, ".env"))

DATA_PATH = os.getenv("DATA_PATH", os.path.join(BASE_DIR, "data", "heart.csv"))
MLRUNS_DIR = os.path.join(BASE_DIR, "mlruns")
TRACKING_URI = os.getenv("MLFLOW_TRACKING_URI", f"file:///{MLRUNS_DIR}")
EXPERIMENT_NAME = "Cardiovascular Disease Classification"


def evaluate_validation(model, dataset, validation_split):
    """Score the held-out trailing slice with the usual classification metrics."""
    _, val_set = split_data(dataset, validation_split)
    if len(val_set) == 0:
        return {}, None

    X_val = torch.tensor(val_set.features, dtype=torch.float32)
    y_true = val_set.labels.astype(int)
    y_proba = model.predict_proba(X_val).numpy()
    y_pred = (y_proba > DECISION_THRESHOLD).astype(int)

    metrics = {
        "val_accuracy_final": accuracy_score(y_true, y_pred),
        "val_precision": precision_score(y_true, y_pred, zero_division=0),
        "val_recall": recall_score(y_true, y_pred, zero_division=0),
        "val_f1_score": f1_score(y_true, y_pred, zero_division=0),
    }
    if len(np.unique(y_true)) == 2:
        metrics["val_roc_auc"] = roc_auc_score(y_true, y_proba)

    return metrics, confusion_matrix(y_true, y_pred, labels=[0, 1])


def plot_accuracy(history, path):
    fig, ax = plt.subplots(figsize=(6, 4))
    epochs = range(1, len(history) + 1)
    ax.plot(epochs, [acc * 100 for acc in history], marker="o")
    ax.set_xlabel("Epoch")
    ax.set_ylabel("Training accuracy (%)")
    ax.set_title("Training Accuracy")
    fig.savefig(path, bbox_inches="tight")
    plt.close(fig)


# ---------------------------------------------------
# Main function
# ---------------------------------------------------
def main(data_path=DATA_PATH, config=None):
    config = config or TrainingConfig()

    mlflow.set_tracking_uri(TRACKING_URI)
    mlflow.set_experiment(EXPERIMENT_NAME)

    dataset = build_dataset(load_data(data_path))
    model = create_model(seed=config.seed)

    with mlflow.start_run(run_name="feedforward-64-32"):
        mlflow.log_params(config.model_dump())
        mlflow.log_param("n_records", len(dataset))

        def log_epoch(epoch, logs):
            mlflow.log_metrics(logs, step=epoch)

        history = train(model, dataset, config, on_epoch_end=log_epoch)
        mlflow.log_metric("epochs_run", len(history))

        metrics, cm = evaluate_validation(model, dataset, config.validation_split)
        if metrics:
            mlflow.log_metrics(metrics)

        acc_path = "training_accuracy.png"
        plot_accuracy(history, acc_path)
        mlflow.log_artifact(acc_path)

        if cm is not None:
            fig_cm, ax_cm = plt.subplots(figsize=(5, 5))
            ConfusionMatrixDisplay(cm).plot(ax=ax_cm)
            ax_cm.set_title("Validation Confusion Matrix")
            cm_path = "confusion_matrix_validation.png"
            fig_cm.savefig(cm_path, bbox_inches="tight")
            mlflow.log_artifact(cm_path)
            plt.close(fig_cm)

        print(f"\nTraining finished after {len(history)} epochs")
        print("Final training accuracy:", f"{history[-1] * 100:.2f}%")
        print("Validation metrics:", metrics)

    return history, metrics


# ---------------------------------------------------
# Entry point
# ---------------------------------------------------
if __name__ == "__main__":
    main()
