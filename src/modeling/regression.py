"""Bloom day-of-year regression: training, cross-validation and inference."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.linear_model import LinearRegression
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.model_selection import KFold
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder

from config.settings import (
    CV_FOLDS,
    FEATURE_COLUMNS,
    PREDICTOR_COLUMNS,
    RANDOM_SEED,
    TARGET_COLUMN,
)

logger = logging.getLogger(__name__)

NUMERIC_PREDICTORS = ["year", *FEATURE_COLUMNS]


def build_model() -> Pipeline:
    """Linear model with a one-hot location term."""

    preprocess = ColumnTransformer(
        [
            ("location", OneHotEncoder(handle_unknown="ignore"), ["location"]),
            ("numeric", "passthrough", NUMERIC_PREDICTORS),
        ]
    )
    return Pipeline([("preprocess", preprocess), ("regressor", LinearRegression())])


def _coerce_predictors(frame: pd.DataFrame) -> pd.DataFrame:
    out = frame.copy()
    out["location"] = out["location"].astype(str)
    for col in NUMERIC_PREDICTORS:
        out[col] = pd.to_numeric(out[col], errors="coerce")
    return out


def prepare_training_frame(features: pd.DataFrame) -> pd.DataFrame:
    """Drop rows missing any predictor or the target; no imputation."""

    missing = [col for col in [*PREDICTOR_COLUMNS, TARGET_COLUMN] if col not in features.columns]
    if missing:
        raise AssertionError(f"Feature table missing columns: {missing}")
    frame = _coerce_predictors(features)
    frame[TARGET_COLUMN] = pd.to_numeric(frame[TARGET_COLUMN], errors="coerce")
    complete = frame.dropna(subset=[*PREDICTOR_COLUMNS, TARGET_COLUMN])
    dropped = len(frame) - len(complete)
    if dropped:
        logger.warning("Excluded %s of %s rows with missing features", dropped, len(frame))
    return complete.reset_index(drop=True)


def cross_validate_model(
    features: pd.DataFrame, folds: int = CV_FOLDS, seed: int = RANDOM_SEED
) -> dict[str, Any]:
    """Shuffled K-fold cross-validation of the bloom-day model.

    Args:
        features: Labeled feature table.
        folds: Number of folds.
        seed: Shuffle seed.

    Returns:
        Dictionary with per-fold metrics and their mean/std.
    """

    train = prepare_training_frame(features)
    if len(train) < folds:
        raise ValueError(f"Need at least {folds} complete rows for CV, got {len(train)}")

    splitter = KFold(n_splits=folds, shuffle=True, random_state=seed)
    X = train[PREDICTOR_COLUMNS]
    y = train[TARGET_COLUMN].to_numpy(dtype=float)
    fold_metrics: list[dict[str, float]] = []
    for fold, (train_idx, test_idx) in enumerate(splitter.split(X), start=1):
        model = build_model()
        model.fit(X.iloc[train_idx], y[train_idx])
        y_pred = model.predict(X.iloc[test_idx])
        y_true = y[test_idx]
        metrics = {
            "fold": fold,
            "mae": float(mean_absolute_error(y_true, y_pred)),
            "rmse": float(np.sqrt(mean_squared_error(y_true, y_pred))),
            "r2": float(r2_score(y_true, y_pred)) if len(y_true) > 1 else float("nan"),
        }
        fold_metrics.append(metrics)
        logger.info(
            "Fold %s: MAE=%.2f RMSE=%.2f R2=%.3f", fold, metrics["mae"], metrics["rmse"], metrics["r2"]
        )

    summary: dict[str, Any] = {"folds": fold_metrics, "n_rows": int(len(train))}
    for name in ["mae", "rmse", "r2"]:
        values = np.array([m[name] for m in fold_metrics], dtype=float)
        summary[f"{name}_mean"] = float(np.nanmean(values))
        summary[f"{name}_std"] = float(np.nanstd(values, ddof=0))
    return summary


def fit_model(features: pd.DataFrame) -> Pipeline:
    """Fit the bloom-day model on every complete labeled row."""

    train = prepare_training_frame(features)
    if train.empty:
        raise ValueError("No complete feature rows to train on")
    model = build_model()
    model.fit(train[PREDICTOR_COLUMNS], train[TARGET_COLUMN].to_numpy(dtype=float))
    logger.info("Fitted bloom model on %s rows", len(train))
    return model


def predict_bloom_doy(model: Pipeline, inputs: pd.DataFrame) -> pd.DataFrame:
    """Predict a rounded bloom day-of-year per location.

    Rows with missing predictors are skipped and logged.
    """

    frame = _coerce_predictors(inputs)
    complete_mask = frame[PREDICTOR_COLUMNS].notna().all(axis=1)
    for location in frame.loc[~complete_mask, "location"].tolist():
        logger.warning("Skipping prediction for %s: missing features", location)
    complete = frame.loc[complete_mask]
    if complete.empty:
        return pd.DataFrame({"location": pd.Series(dtype=str), "prediction": pd.Series(dtype=int)})

    raw = model.predict(complete[PREDICTOR_COLUMNS])
    predictions = pd.DataFrame(
        {
            "location": complete["location"].to_numpy(),
            "prediction": np.rint(raw).astype(int),
        }
    )
    return predictions.sort_values("location").reset_index(drop=True)


def save_predictions(predictions: pd.DataFrame, path: str | Path = "predictions.csv") -> Path:
    """Validate and write the `location, prediction` output file."""

    expected_cols = ["location", "prediction"]
    if list(predictions.columns) != expected_cols:
        raise ValueError(f"Wrong columns: {list(predictions.columns)}; expected {expected_cols}")
    if not all(isinstance(x, (int, np.integer)) for x in predictions["prediction"].tolist()):
        raise ValueError(f"Non-integer predictions: {predictions['prediction'].tolist()}")
    if predictions["location"].duplicated().any():
        raise ValueError("Duplicate locations in predictions")

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    predictions.sort_values("location").to_csv(out, index=False)
    return out
