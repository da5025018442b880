"""MLflow utilities (local file-store; disabled via MLFLOW_ENABLED=false)."""

from __future__ import annotations

import contextlib
import logging
import os
import platform
import subprocess
from pathlib import Path
from typing import Iterator

from config.settings import MLFLOW_ENABLED

logger = logging.getLogger(__name__)


def _require_mlflow():
    try:
        import mlflow  # type: ignore
    except Exception as exc:  # pragma: no cover - environment dependency
        raise RuntimeError("MLflow is required but failed to import") from exc
    return mlflow


def _git_commit() -> str | None:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            check=True,
            capture_output=True,
            text=True,
        )
        return result.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return None


def _configure_mlflow() -> None:
    mlflow = _require_mlflow()
    tracking_uri = os.getenv("MLFLOW_TRACKING_URI", "file:./mlruns")
    experiment_name = os.getenv("MLFLOW_EXPERIMENT_NAME", "cherry_bloom_forecast")
    mlflow.set_tracking_uri(tracking_uri)
    mlflow.set_experiment(experiment_name)


@contextlib.contextmanager
def init_mlflow(run_name: str, tags: dict | None = None) -> Iterator[None]:
    """Context manager that starts and ends an MLflow run."""

    if not MLFLOW_ENABLED:
        logger.info("MLflow disabled; skipping run %s", run_name)
        yield
        return

    mlflow = _require_mlflow()
    _configure_mlflow()
    base_tags = {
        "python_version": platform.python_version(),
        "os": platform.platform(),
    }
    commit = _git_commit()
    if commit:
        base_tags["git_commit"] = commit
    if tags:
        base_tags.update(tags)

    with mlflow.start_run(run_name=run_name) as _run:
        mlflow.set_tags(base_tags)
        yield


@contextlib.contextmanager
def nested_run(run_name: str) -> Iterator[None]:
    """Start a child run under the active MLflow run."""

    if not MLFLOW_ENABLED:
        yield
        return
    with _require_mlflow().start_run(run_name=run_name, nested=True):
        yield


def log_params(params: dict) -> None:
    """Log MLflow parameters."""

    if not MLFLOW_ENABLED:
        return
    mlflow = _require_mlflow()
    if params:
        mlflow.log_params(params)


def log_metrics(metrics: dict, step: int | None = None) -> None:
    """Log MLflow metrics."""

    if not MLFLOW_ENABLED:
        return
    mlflow = _require_mlflow()
    if metrics:
        if step is None:
            mlflow.log_metrics(metrics)
        else:
            for key, value in metrics.items():
                mlflow.log_metric(key, value, step=step)


def log_text(text: str, artifact_path: str) -> None:
    """Log text content as an MLflow artifact."""

    if not MLFLOW_ENABLED:
        return
    mlflow = _require_mlflow()
    mlflow.log_text(text, artifact_file=artifact_path)


def log_artifact(path: str | Path) -> None:
    """Log a file artifact."""

    if not MLFLOW_ENABLED:
        return
    mlflow = _require_mlflow()
    mlflow.log_artifact(str(path))
