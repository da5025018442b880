"""Train the bloom-day model on the gold features and predict the target year."""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import pandas as pd

from config.settings import CV_FOLDS, GOLD_DIR, PREDICTION_YEAR, PROCESSED_DIR, RANDOM_SEED
from src.modeling.regression import (
    cross_validate_model,
    fit_model,
    predict_bloom_doy,
    save_predictions,
)
from src.monitoring import mlflow_utils

logger = logging.getLogger(__name__)


def _load_parquet(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Missing required artifact: {path}")
    return pd.read_parquet(path)


def log_cv_summary(cv_summary: dict[str, Any]) -> None:
    """Log CV aggregates, plus per-fold metrics stepped by fold number."""

    mlflow_utils.log_metrics(
        {k: v for k, v in cv_summary.items() if k.endswith(("_mean", "_std"))}
    )
    for fold in cv_summary.get("folds", []):
        mlflow_utils.log_metrics(
            {f"fold_{name}": fold[name] for name in ["mae", "rmse", "r2"]}, step=int(fold["fold"])
        )


def run_prediction(
    features: pd.DataFrame,
    prediction_inputs: pd.DataFrame,
    output_path: Path,
    folds: int = CV_FOLDS,
    seed: int = RANDOM_SEED,
) -> tuple[pd.DataFrame, dict[str, Any]]:
    """Cross-validate, refit on all rows, predict and write the output CSV.

    Args:
        features: Labeled gold feature table.
        prediction_inputs: Unlabeled target-year feature rows.
        output_path: Destination CSV.
        folds: Number of CV folds.
        seed: CV shuffle seed.

    Returns:
        Tuple of predictions DataFrame and CV summary.
    """

    cv_summary = cross_validate_model(features, folds=folds, seed=seed)
    logger.info(
        "CV over %s rows: MAE=%.2f±%.2f RMSE=%.2f±%.2f R2=%.3f",
        cv_summary["n_rows"],
        cv_summary["mae_mean"],
        cv_summary["mae_std"],
        cv_summary["rmse_mean"],
        cv_summary["rmse_std"],
        cv_summary["r2_mean"],
    )
    model = fit_model(features)
    predictions = predict_bloom_doy(model, prediction_inputs)
    save_predictions(predictions, output_path)
    return predictions, cv_summary


def main() -> None:
    """Entrypoint for training and target-year inference."""

    parser = argparse.ArgumentParser(description="Train bloom model and write predictions.")
    parser.add_argument("--output", default="predictions.csv", help="Output CSV path.")
    parser.add_argument("--folds", type=int, default=CV_FOLDS, help="Number of CV folds.")
    args = parser.parse_args()

    features = _load_parquet(GOLD_DIR / "features.parquet")
    prediction_inputs = _load_parquet(GOLD_DIR / "prediction_inputs.parquet")

    with mlflow_utils.init_mlflow(run_name="train_and_predict", tags={"year": str(PREDICTION_YEAR)}):
        mlflow_utils.log_params({"folds": args.folds, "seed": RANDOM_SEED, "model": "linear"})
        predictions, cv_summary = run_prediction(
            features, prediction_inputs, Path(args.output), folds=args.folds
        )
        log_cv_summary(cv_summary)
        PROCESSED_DIR.mkdir(parents=True, exist_ok=True)
        summary_path = PROCESSED_DIR / "cv_summary.json"
        summary_path.write_text(json.dumps(cv_summary, indent=2, sort_keys=True))
        mlflow_utils.log_artifact(summary_path)
        mlflow_utils.log_artifact(args.output)

    for row in predictions.itertuples(index=False):
        date = datetime(PREDICTION_YEAR, 1, 1) + timedelta(days=int(row.prediction) - 1)
        logger.info("%s -> DOY %3d (%s)", f"{row.location:15s}", int(row.prediction), date.strftime("%b %d"))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
