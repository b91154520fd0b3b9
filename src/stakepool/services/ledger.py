# services/ledger.py
"""
Ownership Ledger - share balances per account
"""

from typing import Callable, Optional
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from stakepool.db.models.pool import ShareBalance
from .errors import InvalidArgument


class SharesLedger:
    """
    Share bookkeeping in the share_balances table.

    ``pooled_balance`` returns the pool's total asset balance; it prices
    asset amounts into shares and back.
    """

    def __init__(
        self,
        session: Session,
        pooled_balance: Callable[[], int],
        logger: Optional[logging.Logger] = None,
    ):
        self.session = session
        self.pooled_balance = pooled_balance
        self.logger = logger or logging.getLogger(__name__)

    def total_shares(self) -> int:
        # Amounts are stored as strings, so sum client-side
        rows = self.session.execute(select(ShareBalance.shares)).scalars()
        return sum(rows)

    def shares_of(self, account: str) -> int:
        row = self.session.get(ShareBalance, account)
        return row.shares if row is not None else 0

    def shares_for_amount(self, amount: int) -> int:
        total_shares = self.total_shares()
        balance = self.pooled_balance()
        if total_shares == 0 or balance == 0:
            return amount
        return amount * total_shares // balance

    def balance_of(self, account: str) -> int:
        total_shares = self.total_shares()
        if total_shares == 0:
            return 0
        return self.shares_of(account) * self.pooled_balance() // total_shares

    def mint_shares(self, account: str, amount: int) -> int:
        """Mint the shares worth ``amount`` of pooled assets; returns them"""
        shares = self.shares_for_amount(amount)
        self.mint_raw_shares(account, shares)
        return shares

    def mint_raw_shares(self, account: str, raw_amount: int):
        if raw_amount < 0:
            raise InvalidArgument("Cannot mint a negative share amount")
        row = self.session.get(ShareBalance, account)
        if row is None:
            row = ShareBalance(account=account, shares=0)
            self.session.add(row)
        row.shares = row.shares + raw_amount
        self.session.flush()
