import unittest
import os
import sys

import pandas as pd

sys.path.append(os.getcwd())
from src.processing.chill import CHILL_COLUMNS, assign_chill_year, compute_chill_hours


def _hourly(rows, location="washingtondc"):
    return pd.DataFrame({
        "location": location,
        "timestamp": pd.to_datetime([ts for ts, _ in rows]),
        "temperature": [temp for _, temp in rows],
    })


def _lookup(chill):
    return {(r.location, r.chill_year): r.chill_hours for r in chill.itertuples(index=False)}


class TestChillAggregation(unittest.TestCase):

    def test_assign_chill_year(self):
        ts = pd.Series(pd.to_datetime([
            "2023-11-15", "2023-12-15", "2024-01-10", "2024-02-10", "2024-03-01",
        ]))
        self.assertEqual(assign_chill_year(ts).tolist(), [2024, 2024, 2024, 2024, 2024])
        self.assertEqual(assign_chill_year(pd.Series(pd.to_datetime(["2024-11-01"]))).tolist(), [2025])

    def test_winter_season_buckets(self):
        """ Dec 2023 and Feb 2024 both land in chill year 2024; March is ignored """
        chill = compute_chill_hours(_hourly([
            ("2023-12-15 03:00", 5.0),
            ("2024-02-10 03:00", 5.0),
            ("2024-03-01 03:00", 5.0),
        ]))
        self.assertEqual(_lookup(chill), {("washingtondc", 2024): 2})

    def test_november_joins_following_winter(self):
        chill = compute_chill_hours(_hourly([
            ("2023-11-20 01:00", 3.0),
            ("2024-01-05 01:00", 3.0),
        ]))
        self.assertEqual(_lookup(chill), {("washingtondc", 2024): 2})

    def test_band_is_closed_interval(self):
        chill = compute_chill_hours(_hourly([
            ("2024-01-01 00:00", 0.0),
            ("2024-01-01 01:00", 7.0),
            ("2024-01-01 02:00", -0.1),
            ("2024-01-01 03:00", 7.1),
            ("2024-01-01 04:00", None),
        ]))
        self.assertEqual(_lookup(chill), {("washingtondc", 2024): 2})

    def test_cold_winter_reports_zero(self):
        """ A winter with hours but none in the band still yields a zero total """
        chill = compute_chill_hours(_hourly([
            ("2024-01-01 00:00", -10.0),
            ("2024-01-01 01:00", -12.0),
        ]))
        self.assertEqual(_lookup(chill), {("washingtondc", 2024): 0})

    def test_grouped_by_location(self):
        hourly = pd.concat([
            _hourly([("2024-01-01 00:00", 2.0)], location="kyoto"),
            _hourly([("2024-01-01 00:00", 2.0), ("2024-01-01 01:00", 2.0)], location="liestal"),
        ], ignore_index=True)
        chill = compute_chill_hours(hourly)
        self.assertEqual(list(chill.columns), CHILL_COLUMNS)
        self.assertEqual(_lookup(chill), {("kyoto", 2024): 1, ("liestal", 2024): 2})

    def test_no_winter_hours(self):
        chill = compute_chill_hours(_hourly([("2024-06-01 00:00", 5.0)]))
        self.assertTrue(chill.empty)
        self.assertEqual(list(chill.columns), CHILL_COLUMNS)


if __name__ == '__main__':
    unittest.main()
