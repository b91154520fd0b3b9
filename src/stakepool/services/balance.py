# services/balance.py
from .interfaces import BalanceOracle


class AssetBalanceAggregator:
    """Total value managed by the pool"""

    def __init__(self, oracle: BalanceOracle, deposit_size: int):
        self.oracle = oracle
        self.deposit_size = deposit_size

    def compute_asset_balance(
        self, liquid_balance: int, deposited_validators: int
    ) -> int:
        """
        Liquid balance plus the oracle-reported staked balance. Slots the
        pool funded that the oracle does not see yet are counted at their
        deposit size.
        """
        beacon_count = self.oracle.reported_validator_count()
        balance = self.oracle.reported_balance_sum() + liquid_balance

        if beacon_count < deposited_validators:
            balance += (deposited_validators - beacon_count) * self.deposit_size
        return balance
