import unittest
import os
import sys
import tempfile
from pathlib import Path

import pandas as pd

sys.path.append(os.getcwd())
from config.settings import FEATURE_COLUMNS, SITES
from src.validation import gates


def _feature_table():
    rows = []
    for site_key, site in SITES.items():
        rows.append({
            "location": site.loc_id, "lat": site.lat, "long": site.lon, "alt": site.alt_m,
            "year": 2020, "bloom_date": pd.Timestamp("2020-04-01"), "bloom_doy": 92,
            "site_key": site_key,
            **{col: 1.0 for col in FEATURE_COLUMNS},
        })
    return pd.DataFrame(rows)


class TestValidationGates(unittest.TestCase):

    def test_labels_complete(self):
        features = _feature_table()
        gates.assert_labels_complete(features)
        with self.assertRaises(AssertionError):
            gates.assert_labels_complete(features.loc[features["site_key"] != "nyc"])

    def test_gdd_non_negative(self):
        daily = pd.DataFrame({
            "location": ["kyoto", "kyoto"],
            "date": pd.to_datetime(["2024-01-01", "2024-01-02"]),
            "growing_degree_day": [0.0, float("nan")],
        })
        gates.assert_gdd_non_negative(daily)
        daily.loc[1, "growing_degree_day"] = -1.0
        with self.assertRaises(AssertionError):
            gates.assert_gdd_non_negative(daily)

    def test_unique_daily_dates(self):
        daily = pd.DataFrame({
            "location": ["kyoto", "liestal"],
            "date": pd.to_datetime(["2024-01-01", "2024-01-01"]),
        })
        gates.assert_unique_daily_dates(daily)
        with self.assertRaises(AssertionError):
            gates.assert_unique_daily_dates(pd.concat([daily, daily.iloc[[0]]]))

    def test_chill_years_valid(self):
        chill = pd.DataFrame({"location": ["kyoto"], "chill_year": [2024], "chill_hours": [120]})
        gates.assert_chill_years_valid(chill)
        chill.loc[0, "chill_hours"] = -3
        with self.assertRaises(AssertionError):
            gates.assert_chill_years_valid(chill)

    def test_feature_schema(self):
        features = _feature_table()
        gates.assert_feature_schema(features)
        with self.assertRaises(AssertionError):
            gates.assert_feature_schema(features.drop(columns=["chill_hours"]))
        with self.assertRaises(AssertionError):
            gates.assert_feature_schema(pd.concat([features, features.iloc[[0]]]))
        early = features.copy()
        early.loc[0, "year"] = 1900
        with self.assertRaises(AssertionError):
            gates.assert_feature_schema(early)

    def test_prediction_schema(self):
        locations = [site.loc_id for site in SITES.values()]
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "predictions.csv"
            pd.DataFrame({"location": locations, "prediction": [90] * len(locations)}).to_csv(path, index=False)
            gates.assert_prediction_schema(path)

            pd.DataFrame({"location": locations[:-1], "prediction": [90] * (len(locations) - 1)}).to_csv(
                path, index=False
            )
            with self.assertRaises(AssertionError):
                gates.assert_prediction_schema(path)

            with self.assertRaises(AssertionError):
                gates.assert_prediction_schema(Path(tmp) / "missing.csv")


if __name__ == '__main__':
    unittest.main()
