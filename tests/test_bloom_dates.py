import unittest
import os
import sys

import pandas as pd

sys.path.append(os.getcwd())
from src.processing.bloom_dates import estimate_bloom_dates, normalize_days_since_prior


def _obs(rows):
    return pd.DataFrame(rows, columns=["year", "month", "day", "doy", "days_since_prior"])


class TestBloomDateEstimator(unittest.TestCase):

    def test_sentinel_treated_as_zero(self):
        """ -9999 days since prior means unknown and collapses to the first-yes date """
        result = estimate_bloom_dates(_obs([[2020, 4, 10, 101, -9999]]))
        self.assertEqual(len(result), 1)
        self.assertEqual(result.loc[0, "bloom_date"], pd.Timestamp("2020-04-10"))
        self.assertEqual(result.loc[0, "bloom_doy"], 101)

    def test_normalize_days_since_prior(self):
        values = normalize_days_since_prior(pd.Series([-9999, 4, None, 0]))
        self.assertEqual(values.tolist(), [0, 4, 0, 0])

    def test_midpoint_estimate_floors(self):
        """ A 3-day gap moves bloom 1.5 days earlier, floored to a calendar day """
        result = estimate_bloom_dates(_obs([[2023, 4, 10, 100, 3]]))
        self.assertEqual(result.loc[0, "bloom_date"], pd.Timestamp("2023-04-08"))
        self.assertEqual(result.loc[0, "bloom_doy"], 98)

    def test_earliest_tree_wins(self):
        result = estimate_bloom_dates(
            _obs([
                [2021, 4, 10, 100, 4],
                [2021, 4, 12, 102, 0],
            ])
        )
        self.assertEqual(len(result), 1)
        self.assertEqual(result.loc[0, "bloom_date"], pd.Timestamp("2021-04-08"))
        self.assertEqual(result.loc[0, "bloom_doy"], 98)

    def test_date_and_doy_minima_are_independent(self):
        """ The earliest date and the lowest DOY may come from different trees """
        result = estimate_bloom_dates(
            _obs([
                [2021, 4, 5, 110, 0],
                [2021, 4, 9, 95, 0],
            ])
        )
        self.assertEqual(result.loc[0, "bloom_date"], pd.Timestamp("2021-04-05"))
        self.assertEqual(result.loc[0, "bloom_doy"], 95)

    def test_one_record_per_year(self):
        result = estimate_bloom_dates(
            _obs([
                [2019, 4, 1, 91, 0],
                [2020, 4, 2, 93, 2],
                [2020, 4, 6, 97, 2],
            ])
        )
        self.assertEqual(result["year"].tolist(), [2019, 2020])
        self.assertEqual(result["bloom_doy"].tolist(), [91, 92])

    def test_year_without_qualifying_observations(self):
        result = estimate_bloom_dates(
            _obs([
                [2018, 4, None, 95, 0],
                [2019, 4, 1, 91, 0],
            ])
        )
        self.assertEqual(result["year"].tolist(), [2019])

    def test_estimate_before_new_year_keeps_first_yes_year(self):
        """ A 10-day gap before a Jan 2 first yes lands in late December of the prior year """
        result = estimate_bloom_dates(_obs([[2021, 1, 2, 2, 10]]))
        self.assertEqual(result["year"].tolist(), [2021])
        self.assertEqual(result.loc[0, "bloom_date"], pd.Timestamp("2020-12-28"))
        self.assertEqual(result.loc[0, "bloom_doy"], -3)

    def test_empty_input(self):
        result = estimate_bloom_dates(_obs([]))
        self.assertTrue(result.empty)
        self.assertEqual(list(result.columns), ["year", "bloom_date", "bloom_doy"])


if __name__ == '__main__':
    unittest.main()
