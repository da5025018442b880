"""Central configuration for the cherry blossom peak-bloom forecast."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class SiteConfig:
    """Configuration for a single forecast site."""

    name: str
    loc_id: str
    lat: float
    lon: float
    alt_m: float
    label_file: str | None
    npn_site_id: int | None = None


BASE_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = BASE_DIR / "data"
RAW_DIR = DATA_DIR / "raw"
RAW_GMU_DIR = RAW_DIR / "gmu"
RAW_NPN_DIR = RAW_DIR / "npn"
SILVER_WEATHER_DIR = DATA_DIR / "silver" / "weather"
PROCESSED_DIR = DATA_DIR / "processed"
GOLD_DIR = DATA_DIR / "gold"

NPN_OBSERVATIONS_FILE = "USA-NPN_individual_phenometrics_data.csv"
NPN_YOSHINO_SPECIES_ID = 228


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_flag(name: str, default: str = "false") -> bool:
    value = os.getenv(name, default).strip().lower()
    return value in {"1", "true", "yes", "y"}


# Temporal constants
PREDICTION_YEAR = _env_int("PREDICTION_YEAR", 2026)
# Earliest year with weather archive coverage.
MIN_WEATHER_YEAR = 1940

# Feature constants
GDD_BASE_C = 10.0
CHILL_MIN_C = 0.0
CHILL_MAX_C = 7.0
CHILL_MONTHS = (11, 12, 1, 2)
SECONDS_PER_HOUR = 3600
UNKNOWN_SENTINEL = -9999

FEATURE_COLUMNS = [
    "chill_hours",
    "accumulative_growing_degree_days",
    "total_sunshine_duration",
    "total_precipitation",
]
PREDICTOR_COLUMNS = ["location", "year", *FEATURE_COLUMNS]
TARGET_COLUMN = "bloom_doy"

# Modeling settings
CV_FOLDS = _env_int("CV_FOLDS", 5)
RANDOM_SEED = _env_int("RANDOM_SEED", 42)

# Operational settings
MLFLOW_ENABLED = _env_flag("MLFLOW_ENABLED", "true")


SITES: dict[str, SiteConfig] = {
    "kyoto": SiteConfig(
        name="Kyoto",
        loc_id="kyoto",
        lat=35.0120,
        lon=135.6761,
        alt_m=44.0,
        label_file="kyoto.csv",
    ),
    "liestal": SiteConfig(
        name="Liestal-Weideli",
        loc_id="liestal",
        lat=47.4814,
        lon=7.7305,
        alt_m=350.0,
        label_file="liestal.csv",
    ),
    "washingtondc": SiteConfig(
        name="Washington, D.C.",
        loc_id="washingtondc",
        lat=38.8853,
        lon=-77.0386,
        alt_m=0.0,
        label_file="washingtondc.csv",
    ),
    "vancouver": SiteConfig(
        name="Vancouver",
        loc_id="vancouver",
        lat=49.2237,
        lon=-123.1636,
        alt_m=24.0,
        label_file="vancouver.csv",
    ),
    "nyc": SiteConfig(
        name="New York City",
        loc_id="newyorkcity",
        lat=40.73040,
        lon=-73.99809,
        alt_m=8.5,
        label_file=None,
        npn_site_id=32789,
    ),
}

LOCATION_TO_SITE = {site.loc_id: site_key for site_key, site in SITES.items()}
