"""Seasonal feature join: chill hours plus Jan 1 to bloom-date weather sums."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd

from config.settings import FEATURE_COLUMNS, MIN_WEATHER_YEAR, PREDICTION_YEAR, SITES, SiteConfig
from src.processing.chill import CHILL_COLUMNS, compute_chill_hours, load_hourly_temperatures
from src.processing.labels import BLOOM_RECORD_COLUMNS
from src.processing.weather import DAILY_COLUMNS, load_daily_weather

logger = logging.getLogger(__name__)

# Daily column summed for each windowed feature.
WINDOW_SUMS = {
    "accumulative_growing_degree_days": "growing_degree_day",
    "total_sunshine_duration": "sunshine_duration",
    "total_precipitation": "precipitation",
}


class WeatherTables:
    """Shared read-only daily weather and chill-hour lookups."""

    def __init__(self, daily: pd.DataFrame, chill: pd.DataFrame) -> None:
        """Index the derived tables by location and date / chill year.

        Args:
            daily: DailyWeatherAggregator output for any number of locations.
            chill: HourlyChillAggregator output for any number of locations.
        """

        self.daily = daily
        self.chill = chill
        self._daily_by_location: dict[str, pd.DataFrame] = {
            str(location): group.set_index("date").sort_index()
            for location, group in daily.groupby("location", sort=True)
        }
        self._chill_lookup: dict[tuple[str, int], int] = {
            (str(row.location), int(row.chill_year)): int(row.chill_hours)
            for row in chill.itertuples(index=False)
        }

    def daily_window(self, location: str, start: pd.Timestamp, end: pd.Timestamp) -> pd.DataFrame:
        """Daily rows for `location` with start <= date <= end."""

        frame = self._daily_by_location.get(location)
        if frame is None:
            return pd.DataFrame(columns=DAILY_COLUMNS)
        # Sorted DatetimeIndex: label slicing is a binary search and inclusive on both ends.
        return frame.loc[start:end]

    def chill_hours(self, location: str, chill_year: int) -> float:
        value = self._chill_lookup.get((location, int(chill_year)))
        return float("nan") if value is None else float(value)

    def last_date(self, location: str, year: int) -> pd.Timestamp | None:
        frame = self._daily_by_location.get(location)
        if frame is None:
            return None
        in_year = frame.index[frame.index.year == int(year)]
        if in_year.empty:
            return None
        return in_year.max()


def _window_sum(window: pd.DataFrame, column: str) -> float:
    if window.empty:
        return float("nan")
    return float(pd.to_numeric(window[column], errors="coerce").sum(min_count=1))


def compute_seasonal_features(
    location: str, year: int, bloom_date: Any, tables: WeatherTables
) -> dict[str, float]:
    """Compute the feature values for one (location, year, bloom date).

    Each windowed sum covers Jan 1 of `year` through `bloom_date` inclusive,
    skips gaps, and is NaN when the window holds no values.

    Args:
        location: Location key.
        year: Bloom year; also the chill year looked up.
        bloom_date: End of the accumulation window.
        tables: Shared weather tables.

    Returns:
        Dictionary keyed by FEATURE_COLUMNS.
    """

    features: dict[str, float] = {"chill_hours": tables.chill_hours(location, year)}
    end = pd.Timestamp(bloom_date) if bloom_date is not None else pd.NaT
    if pd.isna(end):
        window = pd.DataFrame(columns=DAILY_COLUMNS)
    else:
        window = tables.daily_window(location, pd.Timestamp(year=int(year), month=1, day=1), end.normalize())
    for feature, column in WINDOW_SUMS.items():
        features[feature] = _window_sum(window, column)
    return features


def build_feature_row(record: Mapping[str, Any], tables: WeatherTables) -> dict[str, Any]:
    """Attach seasonal features to a single bloom record."""

    row = dict(record)
    row.update(
        compute_seasonal_features(
            str(record["location"]), int(record["year"]), record["bloom_date"], tables
        )
    )
    return row


def assemble_feature_table(
    bloom_records: pd.DataFrame,
    tables: WeatherTables,
    min_year: int = MIN_WEATHER_YEAR,
) -> pd.DataFrame:
    """Build the labeled feature table, one row per bloom record.

    Args:
        bloom_records: BloomRecord table (see `assemble_bloom_records`).
        tables: Shared weather tables built once for all rows.
        min_year: Earliest bloom year kept.

    Returns:
        FeatureRow table sorted by location and year.
    """

    eligible = bloom_records.loc[bloom_records["year"] >= min_year]
    records = [build_feature_row(record, tables) for record in eligible.to_dict("records")]
    columns = [*bloom_records.columns, *FEATURE_COLUMNS]
    if not records:
        logger.warning("No bloom records at or after %s; feature table is empty", min_year)
        return pd.DataFrame(columns=columns)

    features = pd.DataFrame.from_records(records, columns=columns)
    incomplete = int(features[FEATURE_COLUMNS].isna().any(axis=1).sum())
    logger.info(
        "Built features for %s site-years (%s with missing weather coverage)",
        len(features),
        incomplete,
    )
    return features.sort_values(["location", "year"]).reset_index(drop=True)


def build_prediction_inputs(
    tables: WeatherTables,
    year: int = PREDICTION_YEAR,
    sites: dict[str, SiteConfig] | None = None,
) -> pd.DataFrame:
    """Build unlabeled feature rows for the target year, one per site.

    The accumulation window ends on the last daily weather date available for
    the site in `year`, forecast tail included.
    """

    site_configs = sites if sites is not None else SITES
    records: list[dict[str, Any]] = []
    for site_key, site in site_configs.items():
        window_end = tables.last_date(site.loc_id, year)
        if window_end is None:
            logger.warning("No %s daily weather for %s; features will be missing", year, site_key)
        record = {
            "location": site.loc_id,
            "lat": site.lat,
            "long": site.lon,
            "alt": site.alt_m,
            "year": int(year),
            "window_end": window_end,
            "site_key": site_key,
        }
        record.update(compute_seasonal_features(site.loc_id, year, window_end, tables))
        records.append(record)
    return pd.DataFrame.from_records(records).sort_values("location").reset_index(drop=True)


def build_weather_tables(
    site_keys: Iterable[str] | None = None, weather_root: Path | None = None
) -> WeatherTables:
    """Load and derive daily weather and chill hours for the given sites."""

    keys = list(site_keys) if site_keys is not None else list(SITES.keys())
    daily_frames: list[pd.DataFrame] = []
    chill_frames: list[pd.DataFrame] = []
    for site_key in keys:
        if site_key not in SITES:
            raise ValueError(f"Unknown site key: {site_key}")
        daily = load_daily_weather(site_key, weather_root=weather_root)
        chill = compute_chill_hours(load_hourly_temperatures(site_key, weather_root=weather_root))
        logger.info(
            "Weather tables for %s: %s daily rows, %s chill years",
            site_key,
            len(daily),
            len(chill),
        )
        daily_frames.append(daily)
        chill_frames.append(chill)

    daily_all = (
        pd.concat(daily_frames, ignore_index=True) if daily_frames else pd.DataFrame(columns=DAILY_COLUMNS)
    )
    chill_all = (
        pd.concat(chill_frames, ignore_index=True) if chill_frames else pd.DataFrame(columns=CHILL_COLUMNS)
    )
    return WeatherTables(daily_all, chill_all)


def feature_table_columns() -> list[str]:
    return [*BLOOM_RECORD_COLUMNS, "site_key", *FEATURE_COLUMNS]
