"""End-to-end pipeline: bloom records, weather features, model, predictions."""

from __future__ import annotations

import argparse
import json
import logging
import time
from pathlib import Path

import pandas as pd

from config.settings import (
    GOLD_DIR,
    NPN_YOSHINO_SPECIES_ID,
    PREDICTION_YEAR,
    PROCESSED_DIR,
    SILVER_WEATHER_DIR,
    SITES,
)
from src.modeling.predictor import log_cv_summary
from src.modeling.regression import cross_validate_model, fit_model, predict_bloom_doy, save_predictions
from src.monitoring import mlflow_utils
from src.processing.features import assemble_feature_table, build_prediction_inputs, build_weather_tables
from src.processing.labels import (
    assemble_bloom_records,
    load_competition_labels,
    load_phenology_observations,
)
from src.validation.run_all_gates import STAGE_GATES, run_gates

logger = logging.getLogger(__name__)

STEPS = ["labels", "features", "train", "predict"]


def _parse_sites(sites_arg: str | None) -> list[str]:
    if not sites_arg or sites_arg == "all":
        return list(SITES.keys())
    sites = [s.strip() for s in sites_arg.split(",") if s.strip()]
    unknown = [s for s in sites if s not in SITES]
    if unknown:
        raise ValueError(f"Unknown site keys: {unknown}")
    return sites


def _ensure_dirs() -> None:
    for path in [SILVER_WEATHER_DIR, PROCESSED_DIR, GOLD_DIR]:
        path.mkdir(parents=True, exist_ok=True)


def _load_required(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Missing required artifact: {path}; run the earlier step first")
    return pd.read_parquet(path)


def _check_gates(stage: str, predictions_path: Path) -> None:
    results = run_gates(STAGE_GATES[stage], predictions_path)
    table = "\n".join(f"{name}: {status}" for name, status in results)
    mlflow_utils.log_text(table, f"{stage}_gate_results.txt")
    if any(status == "FAIL" for _, status in results):
        raise AssertionError(f"Validation gates failed for stage {stage}:\n{table}")


def step_labels(sites: list[str]) -> pd.DataFrame:
    site_configs = {key: SITES[key] for key in sites}
    labels = load_competition_labels(sites=site_configs)
    if any(site.npn_site_id is not None for site in site_configs.values()):
        observations = load_phenology_observations(species_id=NPN_YOSHINO_SPECIES_ID)
    else:
        observations = pd.DataFrame(columns=["site_id"])
    records = assemble_bloom_records(labels, observations, sites=site_configs)
    records.to_parquet(PROCESSED_DIR / "bloom_records.parquet", index=False)
    logger.info("Bloom records: %s rows", len(records))
    return records


def step_features(sites: list[str]) -> pd.DataFrame:
    records = _load_required(PROCESSED_DIR / "bloom_records.parquet")
    tables = build_weather_tables(sites)
    tables.daily.to_parquet(PROCESSED_DIR / "daily_weather.parquet", index=False)
    tables.chill.to_parquet(PROCESSED_DIR / "chill_hours.parquet", index=False)

    features = assemble_feature_table(records, tables)
    features.to_parquet(GOLD_DIR / "features.parquet", index=False)
    inputs = build_prediction_inputs(tables, PREDICTION_YEAR, {key: SITES[key] for key in sites})
    inputs.to_parquet(GOLD_DIR / "prediction_inputs.parquet", index=False)
    logger.info("Gold features: %s rows; prediction inputs: %s rows", len(features), len(inputs))
    return features


def step_train() -> dict:
    features = _load_required(GOLD_DIR / "features.parquet")
    summary = cross_validate_model(features)
    (PROCESSED_DIR / "cv_summary.json").write_text(json.dumps(summary, indent=2, sort_keys=True))
    log_cv_summary(summary)
    mlflow_utils.log_artifact(PROCESSED_DIR / "cv_summary.json")
    logger.info("CV MAE=%.2f RMSE=%.2f", summary["mae_mean"], summary["rmse_mean"])
    return summary


def step_predict(predictions_path: Path) -> pd.DataFrame:
    features = _load_required(GOLD_DIR / "features.parquet")
    inputs = _load_required(GOLD_DIR / "prediction_inputs.parquet")
    model = fit_model(features)
    predictions = predict_bloom_doy(model, inputs)
    save_predictions(predictions, predictions_path)
    mlflow_utils.log_artifact(predictions_path)
    logger.info("Predictions written: %s", predictions_path)
    return predictions


def main() -> None:
    parser = argparse.ArgumentParser(description="Cherry blossom peak-bloom forecast pipeline")
    parser.add_argument("--step", help="labels/features/train/predict")
    parser.add_argument("--sites", help="Comma-separated site keys or 'all'")
    parser.add_argument("--output", default="predictions.csv", help="Predictions CSV path")
    args = parser.parse_args()

    _ensure_dirs()
    sites = _parse_sites(args.sites)
    predictions_path = Path(args.output)

    steps = STEPS
    if args.step:
        if args.step not in STEPS:
            raise ValueError(f"Unknown step: {args.step}")
        steps = [args.step]

    with mlflow_utils.init_mlflow(run_name="bloom_pipeline", tags={"year": str(PREDICTION_YEAR)}):
        mlflow_utils.log_params({"sites": ",".join(sites), "step": args.step or "all"})
        for step in steps:
            with mlflow_utils.nested_run(f"pipeline_{step}"):
                start = time.perf_counter()
                logger.info("Starting step: %s", step)
                if step == "labels":
                    step_labels(sites)
                    if sites == list(SITES.keys()):
                        _check_gates("labels", predictions_path)
                elif step == "features":
                    step_features(sites)
                    _check_gates("features", predictions_path)
                elif step == "train":
                    step_train()
                elif step == "predict":
                    step_predict(predictions_path)
                    if sites == list(SITES.keys()):
                        _check_gates("predict", predictions_path)
                duration = time.perf_counter() - start
                mlflow_utils.log_metrics({"duration_seconds": duration})
                logger.info("Finished step %s in %.1fs", step, duration)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
