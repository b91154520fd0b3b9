# services/interfaces.py
"""
Collaborator contracts consumed by the engine.

The pool ships database-backed implementations of each (see ledger.py,
keys.py, oracle.py, access.py); any object with the same methods can be
injected instead.
"""

from typing import List, Protocol, Tuple


class OwnershipLedger(Protocol):
    def mint_shares(self, account: str, amount: int) -> int: ...

    def mint_raw_shares(self, account: str, raw_amount: int) -> None: ...

    def total_shares(self) -> int: ...


class KeyMaterialStore(Protocol):
    def fetch_keys(
        self, operator_name: str, offset: int, count: int
    ) -> Tuple[List[bytes], List[bytes]]: ...


class BalanceOracle(Protocol):
    def reported_validator_count(self) -> int: ...

    def reported_balance_sum(self) -> int: ...


class AccessControl(Protocol):
    def is_admin(self, caller: str) -> bool: ...
