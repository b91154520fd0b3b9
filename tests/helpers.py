from typing import Dict, List, Optional, Tuple

from stakepool.defs.resources import ConfigResource, DatabaseResource
from stakepool.services.registry import OperatorRecord, OperatorRegistry


def make_db(url: str = "sqlite://") -> DatabaseResource:
    db = DatabaseResource(database_url=url)
    db.create_schema()
    return db


def make_config(**overrides) -> ConfigResource:
    params = dict(
        fee_base=100_000,
        global_fee=10_000,
        operator_rewards_share=50_000,
        deposit_size=32_000,
        treasury_address="treasury",
        admin_addresses=["admin"],
    )
    params.update(overrides)
    return ConfigResource(**params)


def add_operator(
    registry: OperatorRegistry,
    name: str,
    keys: int = 0,
    limit: int = 0,
    funded: int = 0,
    stopped: int = 0,
    active: bool = True,
) -> int:
    return registry.set(
        name,
        OperatorRecord(
            name=name,
            operator_address=f"{name}-payout",
            active=active,
            limit=limit,
            keys=keys,
            funded=funded,
            stopped=stopped,
        ),
    )


class FakeKeyStore:
    """Deterministic keys named after operator and offset"""

    def __init__(self):
        self.calls: List[Tuple[str, int, int]] = []

    def fetch_keys(self, operator_name: str, offset: int, count: int):
        self.calls.append((operator_name, offset, count))
        keys = [f"{operator_name}-key-{i}".encode() for i in range(offset, offset + count)]
        sigs = [f"{operator_name}-sig-{i}".encode() for i in range(offset, offset + count)]
        return keys, sigs


class RecordingLedger:
    def __init__(self, total_shares: int = 0):
        self._total_shares = total_shares
        self.minted: Dict[str, int] = {}

    def total_shares(self) -> int:
        return self._total_shares

    def mint_shares(self, account: str, amount: int) -> int:
        self.mint_raw_shares(account, amount)
        return amount

    def mint_raw_shares(self, account: str, raw_amount: int):
        self.minted[account] = self.minted.get(account, 0) + raw_amount
        self._total_shares += raw_amount

    def minted_to(self, account: str) -> int:
        return self.minted.get(account, 0)


class FixedOracle:
    def __init__(self, validators: int = 0, balance: int = 0):
        self.validators = validators
        self.balance = balance

    def reported_validator_count(self) -> int:
        return self.validators

    def reported_balance_sum(self) -> int:
        return self.balance


class FailingKeyStore:
    """Key store that blows up on fetch, for rollback tests"""

    def __init__(self, session, logger: Optional[object] = None):
        self.session = session

    def add_keys(self, operator_name, public_keys, signatures):
        raise RuntimeError("key store unavailable")

    def fetch_keys(self, operator_name: str, offset: int, count: int):
        raise RuntimeError("key store unavailable")
