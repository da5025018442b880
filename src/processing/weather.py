"""Daily weather preparation: growing-degree-days and sunshine hours."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from config.settings import GDD_BASE_C, SECONDS_PER_HOUR, SILVER_WEATHER_DIR, SITES

logger = logging.getLogger(__name__)

DAILY_COLUMNS = [
    "location",
    "date",
    "temperature_max",
    "temperature_min",
    "sunshine_duration",
    "precipitation",
    "year",
    "growing_degree_day",
]

_OPEN_METEO_DAILY = {
    "time": "date",
    "temperature_2m_max": "temperature_max",
    "temperature_2m_min": "temperature_min",
    "sunshine_duration": "sunshine_duration",
    "precipitation_sum": "precipitation",
}
_MEASUREMENTS = ["temperature_max", "temperature_min", "sunshine_duration", "precipitation"]


def compute_growing_degree_day(
    temperature_max: pd.Series, temperature_min: pd.Series, base_c: float = GDD_BASE_C
) -> pd.Series:
    """Daily growing-degree-days above `base_c`, clamped at zero. Gaps stay NaN."""

    mean_temp = (temperature_max + temperature_min) / 2
    return (mean_temp - base_c).clip(lower=0)


def sunshine_to_hours(seconds):
    """Convert sunshine duration from seconds to hours."""

    return pd.to_numeric(seconds, errors="coerce") / SECONDS_PER_HOUR


def _normalize_daily_frame(raw: pd.DataFrame, location: str) -> pd.DataFrame:
    df = raw.rename(columns=_OPEN_METEO_DAILY).copy()
    if "date" not in df.columns:
        raise AssertionError("Daily weather frame missing time/date column")
    for col in _MEASUREMENTS:
        if col not in df.columns:
            logger.warning("Daily weather for %s missing %s; treating as gaps", location, col)
            df[col] = float("nan")
        values = pd.to_numeric(df[col], errors="coerce")
        malformed = int((values.isna() & df[col].notna()).sum())
        if malformed:
            logger.warning("Coerced %s malformed %s values for %s", malformed, col, location)
        df[col] = values

    dates = pd.to_datetime(df["date"], errors="coerce")
    if dates.dt.tz is not None:
        dates = dates.dt.tz_localize(None)
    df["date"] = dates.dt.normalize()
    df = df.dropna(subset=["date"])
    df["location"] = location
    return df[["location", "date", *_MEASUREMENTS]]


def _history_cutoff(history: pd.DataFrame) -> pd.Timestamp | None:
    observed = history.loc[history[_MEASUREMENTS].notna().any(axis=1), "date"]
    if observed.empty:
        return None
    return observed.max()


def prepare_daily_weather(
    history: pd.DataFrame,
    location: str,
    forecast: pd.DataFrame | None = None,
) -> pd.DataFrame:
    """Build one derived daily record per date for a location.

    History is authoritative up to its last observed date; the forecast only
    fills dates after that cutoff.

    Args:
        history: Raw daily archive rows (Open-Meteo naming, sunshine in seconds).
        location: Location key written to every row.
        forecast: Optional raw daily forecast rows in the same layout.

    Returns:
        DataFrame with DAILY_COLUMNS, sorted by date, unique per date.
    """

    hist = _normalize_daily_frame(history, location)
    hist = hist.drop_duplicates(subset=["date"], keep="first")
    cutoff = _history_cutoff(hist)
    if cutoff is not None:
        hist = hist.loc[hist["date"] <= cutoff]
    elif forecast is not None and not forecast.empty:
        # Nothing observed yet: the forecast supplies every date.
        hist = hist.iloc[0:0]

    frames = [hist]
    if forecast is not None and not forecast.empty:
        fc = _normalize_daily_frame(forecast, location)
        fc = fc.drop_duplicates(subset=["date"], keep="last")
        if cutoff is not None:
            fc = fc.loc[fc["date"] > cutoff]
        logger.info("Appending %s forecast days for %s after %s", len(fc), location, cutoff)
        frames.append(fc)

    frames = [frame for frame in frames if not frame.empty]
    if not frames:
        return pd.DataFrame(columns=DAILY_COLUMNS)
    daily = pd.concat(frames, ignore_index=True).sort_values("date")
    daily["sunshine_duration"] = sunshine_to_hours(daily["sunshine_duration"])
    daily["year"] = daily["date"].dt.year.astype(int)
    daily["growing_degree_day"] = compute_growing_degree_day(
        daily["temperature_max"], daily["temperature_min"]
    )
    return daily[DAILY_COLUMNS].reset_index(drop=True)


def load_daily_weather(site_key: str, weather_root: Path | None = None) -> pd.DataFrame:
    """Load a site's daily archive (and forecast tail, if present) and derive features."""

    root = weather_root or SILVER_WEATHER_DIR
    site_dir = root / site_key
    history_path = site_dir / f"{site_key}_daily_history.parquet"
    forecast_path = site_dir / f"{site_key}_daily_forecast.parquet"
    if not history_path.exists():
        raise FileNotFoundError(f"Missing daily weather history for {site_key}: {history_path}")
    history = pd.read_parquet(history_path)
    forecast = pd.read_parquet(forecast_path) if forecast_path.exists() else None
    if forecast is None:
        logger.info("No daily forecast file for %s", site_key)
    return prepare_daily_weather(history, SITES[site_key].loc_id, forecast=forecast)
