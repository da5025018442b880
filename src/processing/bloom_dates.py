"""Peak-bloom estimation from volunteer first-open-flower observations."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from config.settings import UNKNOWN_SENTINEL

logger = logging.getLogger(__name__)


def normalize_days_since_prior(values: pd.Series) -> pd.Series:
    """Replace the unknown sentinel (and gaps) with zero days."""

    days = pd.to_numeric(values, errors="coerce")
    return days.mask(days == UNKNOWN_SENTINEL, 0).fillna(0)


def estimate_bloom_dates(observations: pd.DataFrame) -> pd.DataFrame:
    """Estimate one peak-bloom date per year for a single site and species.

    Each tree's bloom is placed halfway between its last "no" and first "yes"
    observation. The year's record takes the earliest estimated date and the
    earliest estimated day-of-year independently.

    Args:
        observations: DataFrame with year, month, day, doy, days_since_prior.

    Returns:
        DataFrame with columns: year, bloom_date, bloom_doy.
    """

    if observations.empty:
        return pd.DataFrame(columns=["year", "bloom_date", "bloom_doy"])

    obs = observations.copy()
    for col in ["year", "month", "day", "doy"]:
        obs[col] = pd.to_numeric(obs[col], errors="coerce")
    obs = obs.dropna(subset=["year", "month", "day", "doy"])
    if obs.empty:
        logger.warning("No complete phenology observations")
        return pd.DataFrame(columns=["year", "bloom_date", "bloom_doy"])

    obs[["year", "month", "day"]] = obs[["year", "month", "day"]].astype(int)
    first_yes = pd.to_datetime(obs[["year", "month", "day"]], errors="coerce")
    half_gap = normalize_days_since_prior(obs["days_since_prior"]) / 2

    # An early-January first yes with a long gap can land before Jan 1: bloom_doy
    # goes to zero or below and the row stays grouped under the first-yes year.
    obs["bloom_date"] = (first_yes - pd.to_timedelta(half_gap, unit="D")).dt.floor("D")
    obs["bloom_doy"] = np.floor(obs["doy"] - half_gap)
    obs = obs.dropna(subset=["bloom_date"])
    if obs.empty:
        logger.warning("No qualifying phenology observations after cleaning")
        return pd.DataFrame(columns=["year", "bloom_date", "bloom_doy"])

    per_year = (
        obs.groupby("year", sort=True)
        .agg(bloom_date=("bloom_date", "min"), bloom_doy=("bloom_doy", "min"))
        .reset_index()
    )
    per_year["bloom_doy"] = per_year["bloom_doy"].astype(int)
    return per_year
