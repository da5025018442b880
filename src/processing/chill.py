"""Winter chill-hour accumulation from hourly temperatures."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from config.settings import CHILL_MAX_C, CHILL_MIN_C, CHILL_MONTHS, SILVER_WEATHER_DIR, SITES

logger = logging.getLogger(__name__)

CHILL_COLUMNS = ["location", "chill_year", "chill_hours"]


def _normalize_hourly_frame(raw: pd.DataFrame, location: str) -> pd.DataFrame:
    df = raw.rename(columns={"time": "timestamp", "temperature_2m": "temperature"}).copy()
    if "timestamp" not in df.columns or "temperature" not in df.columns:
        raise AssertionError("Hourly weather frame needs time and temperature_2m columns")
    df["timestamp"] = pd.to_datetime(df["timestamp"], errors="coerce")
    df["temperature"] = pd.to_numeric(df["temperature"], errors="coerce")
    df = df.dropna(subset=["timestamp"])
    df["location"] = location
    return df[["location", "timestamp", "temperature"]]


def assign_chill_year(timestamps: pd.Series) -> pd.Series:
    """Attribute Nov/Dec hours to the following year; Jan/Feb keep their own."""

    month_index = timestamps.dt.month % 12
    return timestamps.dt.year + month_index.isin([0, 11]).astype(int)


def compute_chill_hours(
    hourly: pd.DataFrame,
    min_c: float = CHILL_MIN_C,
    max_c: float = CHILL_MAX_C,
) -> pd.DataFrame:
    """Count winter hours within [min_c, max_c] per location and chill year.

    Args:
        hourly: DataFrame with location, timestamp and temperature columns.
        min_c: Lower bound of the chill band (inclusive).
        max_c: Upper bound of the chill band (inclusive).

    Returns:
        DataFrame with CHILL_COLUMNS, one row per (location, chill_year).
    """

    if hourly.empty:
        return pd.DataFrame(columns=CHILL_COLUMNS)

    winter = hourly.loc[hourly["timestamp"].dt.month.isin(CHILL_MONTHS)].copy()
    if winter.empty:
        return pd.DataFrame(columns=CHILL_COLUMNS)
    temps = winter["temperature"]
    winter["chill"] = ((temps >= min_c) & (temps <= max_c)).astype(int)
    winter["chill_year"] = assign_chill_year(winter["timestamp"])

    totals = (
        winter.groupby(["location", "chill_year"], sort=True)["chill"]
        .sum()
        .rename("chill_hours")
        .reset_index()
    )
    totals["chill_year"] = totals["chill_year"].astype(int)
    totals["chill_hours"] = totals["chill_hours"].astype(int)
    return totals[CHILL_COLUMNS]


def load_hourly_temperatures(site_key: str, weather_root: Path | None = None) -> pd.DataFrame:
    """Load a site's hourly temperature archive."""

    root = weather_root or SILVER_WEATHER_DIR
    path = root / site_key / f"{site_key}_hourly.parquet"
    if not path.exists():
        raise FileNotFoundError(f"Missing hourly weather for {site_key}: {path}")
    hourly = _normalize_hourly_frame(pd.read_parquet(path), SITES[site_key].loc_id)
    logger.info("Loaded %s hourly rows for %s", len(hourly), site_key)
    return hourly
