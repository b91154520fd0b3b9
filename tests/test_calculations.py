from unittest import TestCase

import pandas as pd

from stakepool.services.registry import OperatorRecord
from stakepool.utils.calculations import (
    coefficient_of_variation,
    compute_funding_concentration,
    gini_coefficient,
    herfindahl_hirschman_index,
    operators_frame,
    top_n_percentage,
)


def record(name, funded, stopped=0, keys=10, limit=10, active=True):
    return OperatorRecord(
        name=name,
        operator_address=f"{name}-payout",
        active=active,
        limit=limit,
        keys=keys,
        funded=funded,
        stopped=stopped,
    )


class TestConcentrationHelpers(TestCase):
    def test_hhi(self) -> None:
        self.assertAlmostEqual(herfindahl_hirschman_index(pd.Series([5, 5, 5, 5])), 0.25)
        self.assertAlmostEqual(herfindahl_hirschman_index(pd.Series([10, 0])), 1.0)
        self.assertEqual(herfindahl_hirschman_index(pd.Series([0, 0])), 0.0)

    def test_gini(self) -> None:
        self.assertAlmostEqual(gini_coefficient(pd.Series([3, 3, 3])), 0.0)
        self.assertAlmostEqual(gini_coefficient(pd.Series([0, 0, 0, 12])), 0.75)
        self.assertEqual(gini_coefficient(pd.Series([7])), 0.0)

    def test_top_n_and_cv(self) -> None:
        values = pd.Series([6, 3, 1])
        self.assertAlmostEqual(top_n_percentage(values, 1), 60.0)
        self.assertAlmostEqual(top_n_percentage(values, 5), 100.0)
        self.assertEqual(coefficient_of_variation(pd.Series([4, 4, 4])), 0.0)
        self.assertEqual(coefficient_of_variation(pd.Series([4])), 0.0)


class TestFundingConcentration(TestCase):
    def test_operators_frame_derives_columns(self) -> None:
        df = operators_frame(
            [record("A", 4, stopped=1, keys=6, limit=5), record("B", 7, keys=7)]
        )

        self.assertEqual(list(df["active_validators"]), [3, 7])
        self.assertEqual(list(df["capacity"]), [1, 0])

    def test_empty_registry(self) -> None:
        df = operators_frame([])

        self.assertTrue(df.empty)
        self.assertEqual(compute_funding_concentration(df), {})

    def test_metrics(self) -> None:
        df = operators_frame(
            [
                record("A", 5),
                record("B", 5, stopped=5),
                record("C", 10, active=False),
            ]
        )

        metrics = compute_funding_concentration(df, top_n=1)

        self.assertEqual(metrics["operator_count"], 3)
        self.assertEqual(metrics["fundable_operator_count"], 2)
        self.assertEqual(metrics["total_funded"], 20)
        self.assertEqual(metrics["total_active_validators"], 5)
        self.assertAlmostEqual(metrics["funded_hhi"], 0.375)
        self.assertAlmostEqual(metrics["funded_top_n_percentage"], 50.0)
        self.assertAlmostEqual(metrics["active_hhi"], 1.0)
        self.assertAlmostEqual(metrics["effective_operators"], 1 / 0.375)
