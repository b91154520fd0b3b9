# services/rewards.py
"""
Reward Distribution Engine - converts balance growth into fee shares
"""

from dataclasses import dataclass
from typing import Dict, Optional
import logging

from sqlalchemy.orm import Session

from stakepool.db.models.pool import EarningsDistributedEvent
from .errors import InvalidArgument
from .interfaces import OwnershipLedger
from .registry import OperatorRegistry


@dataclass
class Distribution:
    amount: int
    shares_to_mint: int
    operator_rewards: int
    operator_minted: int
    treasury_amount: int
    total_active_validators: int
    per_operator: Dict[str, int]

    @property
    def unminted(self) -> int:
        """Per-validator truncation remainder, minted to nobody"""
        return self.shares_to_mint - self.operator_minted - self.treasury_amount


def compute_shares_to_mint(
    amount: int,
    total_shares: int,
    global_fee: int,
    total_asset_balance: int,
    fee_base: int,
) -> int:
    """
    Shares that give the fee recipients ``amount * global_fee / fee_base``
    worth of the pool once minted, diluting existing holders by exactly
    that fraction of the increase.

    Returns 0 when nothing can be priced: no shares, no fee, or a
    non-positive denominator.
    """
    if amount <= 0 or total_shares <= 0 or global_fee <= 0:
        return 0
    denominator = total_asset_balance * fee_base - amount * global_fee
    if denominator <= 0:
        return 0
    return amount * total_shares * global_fee // denominator


class RewardDistributor:
    def __init__(
        self,
        session: Session,
        registry: OperatorRegistry,
        ledger: OwnershipLedger,
        treasury_address: str,
        fee_base: int,
        logger: Optional[logging.Logger] = None,
    ):
        self.session = session
        self.registry = registry
        self.ledger = ledger
        self.treasury_address = treasury_address
        self.fee_base = fee_base
        self.logger = logger or logging.getLogger(__name__)

    def distribute_earnings(
        self,
        amount: int,
        total_asset_balance: int,
        global_fee: int,
        operator_rewards_share: int,
    ) -> Distribution:
        """
        Mint fee shares for a balance increase of ``amount``.

        Operators are paid per active validator from
        ``operator_rewards_share`` of the minted shares; the treasury gets
        the rest. With no active validators no operator is paid and the
        treasury receives every minted share.

        Args:
            amount: Balance increase since the last accounting point
            total_asset_balance: Aggregate pool balance, increase included
            global_fee: Fee fraction of fee_base
            operator_rewards_share: Operators' fraction of the fee shares

        Returns:
            The resulting Distribution
        """
        if amount < 0:
            raise InvalidArgument("Earnings amount must be non-negative")
        self._check_fraction("global_fee", global_fee)
        self._check_fraction("operator_rewards_share", operator_rewards_share)

        shares_to_mint = compute_shares_to_mint(
            amount,
            self.ledger.total_shares(),
            global_fee,
            total_asset_balance,
            self.fee_base,
        )
        operator_rewards = shares_to_mint * operator_rewards_share // self.fee_base

        active = self.registry.get_all_active()
        total_active_validators = sum(op.active_validators for op in active)

        per_operator: Dict[str, int] = {}
        operator_minted = 0
        if total_active_validators == 0:
            treasury_amount = shares_to_mint
            if operator_rewards > 0:
                self.logger.warning(
                    f"No active validators; operators forfeit {operator_rewards} "
                    f"reward shares and the treasury receives all {shares_to_mint}"
                )
        else:
            treasury_amount = shares_to_mint - operator_rewards
            per_validator = operator_rewards // total_active_validators
            for operator in active:
                reward = operator.active_validators * per_validator
                if reward <= 0:
                    continue
                self.ledger.mint_raw_shares(operator.operator_address, reward)
                per_operator[operator.name] = reward
                operator_minted += reward
                self.logger.debug(
                    f"Operator {operator.name}: {operator.active_validators} "
                    f"validators -> {reward} shares"
                )

        if treasury_amount > 0:
            self.ledger.mint_raw_shares(self.treasury_address, treasury_amount)

        distribution = Distribution(
            amount=amount,
            shares_to_mint=shares_to_mint,
            operator_rewards=operator_rewards,
            operator_minted=operator_minted,
            treasury_amount=treasury_amount,
            total_active_validators=total_active_validators,
            per_operator=per_operator,
        )
        self.session.add(
            EarningsDistributedEvent(
                amount=amount,
                shares_to_mint=shares_to_mint,
                operator_rewards=operator_rewards,
                operator_minted=operator_minted,
                treasury_amount=treasury_amount,
                total_active_validators=total_active_validators,
            )
        )
        self.logger.info(
            f"Earnings distributed: amount={amount}, shares={shares_to_mint}, "
            f"operators={operator_rewards}, treasury={treasury_amount}"
        )
        return distribution

    def _check_fraction(self, name: str, value: int):
        if not 0 <= value <= self.fee_base:
            raise InvalidArgument(f"{name} must be within [0, {self.fee_base}]")
