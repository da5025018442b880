"""Unified validation gate runner."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)


STAGE_GATES = {
    "labels": [
        "assert_labels_complete",
    ],
    "features": [
        "assert_gdd_non_negative",
        "assert_unique_daily_dates",
        "assert_chill_years_valid",
        "assert_feature_schema",
    ],
    "predict": [
        "assert_prediction_schema",
    ],
}


def _run_gate(name: str, predictions_path: Path) -> None:
    logger.info("Running gate: %s", name)
    from config.settings import GOLD_DIR, PROCESSED_DIR
    from src.validation import gates
    fn = getattr(gates, name)
    if name == "assert_labels_complete":
        fn(pd.read_parquet(PROCESSED_DIR / "bloom_records.parquet"))
    elif name in {"assert_gdd_non_negative", "assert_unique_daily_dates"}:
        fn(pd.read_parquet(PROCESSED_DIR / "daily_weather.parquet"))
    elif name == "assert_chill_years_valid":
        fn(pd.read_parquet(PROCESSED_DIR / "chill_hours.parquet"))
    elif name == "assert_feature_schema":
        fn(pd.read_parquet(GOLD_DIR / "features.parquet"))
    elif name == "assert_prediction_schema":
        fn(predictions_path)


def run_gates(gate_names: list[str], predictions_path: Path = Path("predictions.csv")) -> list[tuple[str, str]]:
    """Run gates in order, stopping at the first failure."""

    results: list[tuple[str, str]] = []
    for gate_name in gate_names:
        try:
            _run_gate(gate_name, predictions_path)
            results.append((gate_name, "PASS"))
        except (AssertionError, OSError) as exc:
            logger.error("Gate %s failed: %s", gate_name, exc)
            results.append((gate_name, "FAIL"))
            break
    return results


def main() -> None:
    parser = argparse.ArgumentParser(description="Run bloom forecast validation gates.")
    parser.add_argument("--stage", help="Optional stage to run gates for.")
    parser.add_argument("--predictions", default="predictions.csv", help="Predictions CSV path.")
    args = parser.parse_args()

    if args.stage:
        if args.stage not in STAGE_GATES:
            raise ValueError(f"Unknown stage: {args.stage}")
        gate_names = STAGE_GATES[args.stage]
    else:
        gate_names = [name for names in STAGE_GATES.values() for name in names]

    results = run_gates(gate_names, Path(args.predictions))
    table = "\n".join(f"{name}: {status}" for name, status in results)
    print(table)

    if any(status == "FAIL" for _, status in results):
        sys.exit(1)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
