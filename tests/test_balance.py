from unittest import TestCase

from stakepool.services.balance import AssetBalanceAggregator

from helpers import FixedOracle

DEPOSIT = 32_000


class TestAssetBalanceAggregator(TestCase):
    def test_counts_unseen_slots_at_deposit_size(self) -> None:
        aggregator = AssetBalanceAggregator(FixedOracle(2, 70_000), DEPOSIT)

        balance = aggregator.compute_asset_balance(
            liquid_balance=500, deposited_validators=5
        )

        self.assertEqual(balance, 70_000 + 500 + 3 * DEPOSIT)

    def test_no_correction_once_oracle_caught_up(self) -> None:
        aggregator = AssetBalanceAggregator(FixedOracle(5, 161_000), DEPOSIT)

        self.assertEqual(aggregator.compute_asset_balance(500, 5), 161_500)

    def test_oracle_ahead_gets_no_negative_correction(self) -> None:
        aggregator = AssetBalanceAggregator(FixedOracle(6, 190_000), DEPOSIT)

        self.assertEqual(aggregator.compute_asset_balance(0, 5), 190_000)

    def test_empty_pool(self) -> None:
        aggregator = AssetBalanceAggregator(FixedOracle(), DEPOSIT)

        self.assertEqual(aggregator.compute_asset_balance(0, 0), 0)
