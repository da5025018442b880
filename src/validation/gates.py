"""Validation gates for the bloom forecast tables and outputs."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from config.settings import FEATURE_COLUMNS, MIN_WEATHER_YEAR, SITES
from src.processing.features import feature_table_columns

logger = logging.getLogger(__name__)


def assert_labels_complete(bloom_records: pd.DataFrame) -> None:
    """Every configured site has at least one bloom record."""

    sites = set(bloom_records["site_key"].unique())
    missing = set(SITES.keys()) - sites
    if missing:
        raise AssertionError(f"Missing sites in bloom records: {sorted(missing)}")


def assert_gdd_non_negative(daily: pd.DataFrame) -> None:
    """No derived growing-degree-day is negative."""

    gdd = pd.to_numeric(daily["growing_degree_day"], errors="coerce")
    if (gdd < 0).any():
        bad = daily.loc[gdd < 0, ["location", "date", "growing_degree_day"]]
        raise AssertionError(f"Negative growing_degree_day values:\n{bad.head(10)}")


def assert_unique_daily_dates(daily: pd.DataFrame) -> None:
    """At most one daily record per (location, date)."""

    dupes = daily.duplicated(subset=["location", "date"], keep=False)
    if dupes.any():
        bad = daily.loc[dupes, ["location", "date"]]
        raise AssertionError(f"Duplicate daily weather dates:\n{bad.head(10)}")


def assert_chill_years_valid(chill: pd.DataFrame) -> None:
    """Chill totals are non-negative integers, one per (location, chill_year)."""

    hours = pd.to_numeric(chill["chill_hours"], errors="coerce")
    if hours.isna().any() or (hours < 0).any() or (hours % 1 != 0).any():
        raise AssertionError("chill_hours must be non-negative integers")
    if chill.duplicated(subset=["location", "chill_year"]).any():
        raise AssertionError("Duplicate (location, chill_year) rows in chill table")


def assert_feature_schema(features: pd.DataFrame) -> None:
    """Feature table has FeatureRow columns, unique site-years, weather-era years."""

    missing = [col for col in feature_table_columns() if col not in features.columns]
    if missing:
        raise AssertionError(f"Feature table missing columns: {missing}")
    if features.duplicated(subset=["location", "year"]).any():
        raise AssertionError("Duplicate (location, year) rows in feature table")
    if (features["year"] < MIN_WEATHER_YEAR).any():
        raise AssertionError(f"Feature rows before {MIN_WEATHER_YEAR}")
    coverage = features[FEATURE_COLUMNS].notna().mean()
    for col, rate in coverage.items():
        logger.info("Feature %s coverage: %.1f%%", col, rate * 100)


def assert_prediction_schema(path: Path) -> None:
    """Prediction CSV has `location, prediction` and one row per site."""

    if not path.exists():
        raise AssertionError(f"Missing predictions file: {path}")
    df = pd.read_csv(path)
    if list(df.columns) != ["location", "prediction"]:
        raise AssertionError(f"Wrong prediction columns: {list(df.columns)}")
    expected = {site.loc_id for site in SITES.values()}
    actual = set(df["location"].tolist())
    if actual != expected:
        raise AssertionError(
            "Location mismatch: "
            f"missing={sorted(expected - actual)}, "
            f"extra={sorted(actual - expected)}"
        )
    if (pd.to_numeric(df["prediction"], errors="coerce") % 1 != 0).any():
        raise AssertionError("Predictions must be integer day-of-year values")
