"""Label loaders for published peak-bloom records and phenology observations."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from config.settings import (
    LOCATION_TO_SITE,
    MIN_WEATHER_YEAR,
    NPN_OBSERVATIONS_FILE,
    RAW_GMU_DIR,
    RAW_NPN_DIR,
    SITES,
    SiteConfig,
)
from src.processing.bloom_dates import estimate_bloom_dates

logger = logging.getLogger(__name__)

BLOOM_RECORD_COLUMNS = [
    "location",
    "lat",
    "long",
    "alt",
    "year",
    "bloom_date",
    "bloom_doy",
]

_NPN_COLUMNS = {
    "Site_ID": "site_id",
    "Species_ID": "species_id",
    "First_Yes_Year": "year",
    "First_Yes_Month": "month",
    "First_Yes_Day": "day",
    "First_Yes_DOY": "doy",
    "NumDays_Since_Prior_No": "days_since_prior",
}


def load_competition_labels(
    raw_dir: Path | None = None, sites: dict[str, SiteConfig] | None = None
) -> pd.DataFrame:
    """Load and validate the published peak-bloom records."""

    raw_root = raw_dir or RAW_GMU_DIR
    site_configs = sites if sites is not None else SITES
    frames = []
    for site in site_configs.values():
        if site.label_file is None:
            continue
        path = raw_root / site.label_file
        if not path.exists():
            raise FileNotFoundError(f"Missing label file: {path}")
        frames.append(pd.read_csv(path))

    if not frames:
        return pd.DataFrame(columns=[*BLOOM_RECORD_COLUMNS, "site_key"])

    labels = pd.concat(frames, ignore_index=True)
    # Pre-1677 dates exceed the pandas ns timestamp range; bloom_doy is authoritative.
    labels["bloom_date"] = labels["bloom_date"].astype(str)
    labels["bloom_doy"] = pd.to_numeric(labels["bloom_doy"], errors="raise")
    if (labels["bloom_doy"] % 1 != 0).any():
        bad = labels.loc[labels["bloom_doy"] % 1 != 0, ["location", "year", "bloom_date", "bloom_doy"]]
        raise AssertionError(f"Non-integer bloom_doy values:\n{bad.head(10)}")
    labels["bloom_doy"] = labels["bloom_doy"].astype(int)
    if ((labels["bloom_doy"] < 1) | (labels["bloom_doy"] > 366)).any():
        bad = labels.loc[(labels["bloom_doy"] < 1) | (labels["bloom_doy"] > 366),
                         ["location", "year", "bloom_date", "bloom_doy"]]
        raise AssertionError(f"bloom_doy out of range [1, 366]:\n{bad.head(10)}")

    labels["year"] = pd.to_numeric(labels["year"], errors="raise").astype(int)
    labels["site_key"] = labels["location"].map(LOCATION_TO_SITE)
    if labels["site_key"].isna().any():
        missing = labels.loc[labels["site_key"].isna(), "location"].unique()
        raise AssertionError(f"Unknown location values in labels: {missing}")
    return labels


def load_phenology_observations(
    path: Path | None = None,
    site_id: int | None = None,
    species_id: int | None = None,
) -> pd.DataFrame:
    """Load USA-NPN individual phenometrics as first-open-flower observations.

    Args:
        path: CSV export from the USA-NPN data portal.
        site_id: Optional NPN site to keep.
        species_id: Optional NPN species to keep.

    Returns:
        DataFrame with columns: site_id, species_id, year, month, day, doy,
        days_since_prior.
    """

    csv_path = path or (RAW_NPN_DIR / NPN_OBSERVATIONS_FILE)
    if not csv_path.exists():
        raise FileNotFoundError(f"Missing phenology observation file: {csv_path}")
    raw = pd.read_csv(csv_path)
    missing = [col for col in _NPN_COLUMNS if col not in raw.columns]
    if missing:
        raise AssertionError(f"Phenology file missing columns: {missing}")

    observations = raw[list(_NPN_COLUMNS)].rename(columns=_NPN_COLUMNS)
    if site_id is not None:
        observations = observations.loc[observations["site_id"] == site_id]
    if species_id is not None:
        observations = observations.loc[observations["species_id"] == species_id]
    return observations.reset_index(drop=True)


def restrict_to_weather_era(labels: pd.DataFrame, min_year: int = MIN_WEATHER_YEAR) -> pd.DataFrame:
    """Keep label rows from years with weather coverage and parse bloom dates."""

    restricted = labels.loc[labels["year"] >= min_year].copy()
    restricted["bloom_date"] = pd.to_datetime(restricted["bloom_date"]).dt.normalize()
    if restricted["bloom_date"].dt.tz is not None:
        restricted["bloom_date"] = restricted["bloom_date"].dt.tz_localize(None)
    dropped = len(labels) - len(restricted)
    if dropped:
        logger.info("Dropped %s label rows before %s", dropped, min_year)
    return restricted.reset_index(drop=True)


def _site_bloom_records(site_key: str, site: SiteConfig, observations: pd.DataFrame) -> pd.DataFrame:
    estimates = estimate_bloom_dates(observations)
    if estimates.empty:
        logger.warning("No phenology estimates for %s", site_key)
    estimates["location"] = site.loc_id
    estimates["lat"] = site.lat
    estimates["long"] = site.lon
    estimates["alt"] = site.alt_m
    estimates["site_key"] = site_key
    return estimates[[*BLOOM_RECORD_COLUMNS, "site_key"]]


def assemble_bloom_records(
    labels: pd.DataFrame,
    observations: pd.DataFrame,
    sites: dict[str, SiteConfig] | None = None,
    min_year: int = MIN_WEATHER_YEAR,
) -> pd.DataFrame:
    """Combine published records with phenology-derived records for the weather era.

    Args:
        labels: Output of `load_competition_labels`.
        observations: Output of `load_phenology_observations`.
        sites: Site configuration; sites with an `npn_site_id` are estimated.
        min_year: Earliest year to keep.

    Returns:
        BloomRecord table sorted by location and year.
    """

    site_configs = sites if sites is not None else SITES
    frames = [restrict_to_weather_era(labels, min_year=min_year)[[*BLOOM_RECORD_COLUMNS, "site_key"]]]
    for site_key, site in site_configs.items():
        if site.npn_site_id is None:
            continue
        site_obs = observations.loc[observations["site_id"] == site.npn_site_id]
        records = _site_bloom_records(site_key, site, site_obs)
        frames.append(records.loc[records["year"] >= min_year])

    frames = [frame for frame in frames if not frame.empty]
    if not frames:
        return pd.DataFrame(columns=[*BLOOM_RECORD_COLUMNS, "site_key"])
    records = pd.concat(frames, ignore_index=True)
    records["year"] = records["year"].astype(int)
    records["bloom_doy"] = records["bloom_doy"].astype(int)
    return records.sort_values(["location", "year"]).reset_index(drop=True)
