import unittest
import os
import sys
import tempfile
from pathlib import Path

import pandas as pd

sys.path.append(os.getcwd())
from config.settings import SITES
from src.processing.labels import (
    BLOOM_RECORD_COLUMNS,
    assemble_bloom_records,
    load_competition_labels,
    load_phenology_observations,
    restrict_to_weather_era,
)

KYOTO_ONLY = {"kyoto": SITES["kyoto"]}


def _write_kyoto(raw_dir: Path, rows=None):
    rows = rows or [
        ["kyoto", 35.0120, 135.6761, 44, 812, "0812-04-01", 92],
        ["kyoto", 1939, "1939-04-10"],
        ["kyoto", 2023, "2023-03-25"],
    ]
    records = []
    for row in rows:
        if len(row) == 3:
            location, year, bloom_date = row
            doy = pd.Timestamp(bloom_date).dayofyear
            records.append([location, 35.0120, 135.6761, 44, year, bloom_date, doy])
        else:
            records.append(row)
    pd.DataFrame(records, columns=BLOOM_RECORD_COLUMNS).to_csv(raw_dir / "kyoto.csv", index=False)


def _npn_frame():
    return pd.DataFrame({
        "Site_ID": [32789, 32789, 32789, 11111],
        "Species_ID": [228, 228, 228, 228],
        "First_Yes_Year": [2022, 2022, 2023, 2023],
        "First_Yes_Month": [4, 4, 4, 3],
        "First_Yes_Day": [6, 10, 1, 1],
        "First_Yes_DOY": [96, 100, 91, 60],
        "NumDays_Since_Prior_No": [4, -9999, 2, 0],
    })


class TestLabelLoaders(unittest.TestCase):

    def test_load_competition_labels(self):
        with tempfile.TemporaryDirectory() as tmp:
            _write_kyoto(Path(tmp))
            labels = load_competition_labels(Path(tmp), sites=KYOTO_ONLY)
        self.assertEqual(len(labels), 3)
        self.assertTrue((labels["site_key"] == "kyoto").all())
        self.assertEqual(labels["year"].tolist(), [812, 1939, 2023])

    def test_missing_label_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(FileNotFoundError):
                load_competition_labels(Path(tmp), sites=KYOTO_ONLY)

    def test_out_of_range_doy(self):
        with tempfile.TemporaryDirectory() as tmp:
            _write_kyoto(Path(tmp), rows=[["kyoto", 35.0, 135.6, 44, 2020, "2020-04-01", 400]])
            with self.assertRaises(AssertionError):
                load_competition_labels(Path(tmp), sites=KYOTO_ONLY)

    def test_restrict_to_weather_era(self):
        with tempfile.TemporaryDirectory() as tmp:
            _write_kyoto(Path(tmp))
            labels = load_competition_labels(Path(tmp), sites=KYOTO_ONLY)
        restricted = restrict_to_weather_era(labels)
        self.assertEqual(restricted["year"].tolist(), [2023])
        self.assertEqual(restricted.loc[0, "bloom_date"], pd.Timestamp("2023-03-25"))

    def test_load_phenology_observations(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "npn.csv"
            _npn_frame().to_csv(path, index=False)
            obs = load_phenology_observations(path, site_id=32789, species_id=228)
        self.assertEqual(len(obs), 3)
        self.assertEqual(
            list(obs.columns),
            ["site_id", "species_id", "year", "month", "day", "doy", "days_since_prior"],
        )

    def test_assemble_bloom_records(self):
        with tempfile.TemporaryDirectory() as tmp:
            _write_kyoto(Path(tmp))
            labels = load_competition_labels(Path(tmp), sites=KYOTO_ONLY)
            path = Path(tmp) / "npn.csv"
            _npn_frame().to_csv(path, index=False)
            obs = load_phenology_observations(path)

        sites = {"kyoto": SITES["kyoto"], "nyc": SITES["nyc"]}
        records = assemble_bloom_records(labels, obs, sites=sites)
        self.assertEqual(records["location"].tolist(), ["kyoto", "newyorkcity", "newyorkcity"])
        nyc = records.loc[records["location"] == "newyorkcity"].set_index("year")
        # 2022: Apr 6 minus 2 days beats Apr 10 with unknown prior.
        self.assertEqual(nyc.loc[2022, "bloom_date"], pd.Timestamp("2022-04-04"))
        self.assertEqual(nyc.loc[2022, "bloom_doy"], 94)
        self.assertEqual(nyc.loc[2023, "bloom_doy"], 90)
        self.assertEqual(nyc.loc[2023, "lat"], SITES["nyc"].lat)


if __name__ == '__main__':
    unittest.main()
