# services/pool.py
"""
StakingPool - wires the registry, allocation, reward and balance
components together and runs every public operation as one atomic unit
of work.
"""

from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence
import logging

from sqlalchemy.orm import Session

from stakepool.db.models.pool import PoolState, SlotDeposit
from .access import AdminGate, require_admin
from .allocation import AllocationEngine
from .balance import AssetBalanceAggregator
from .errors import InvalidArgument, OperatorNotFound
from .interfaces import AccessControl, BalanceOracle, KeyMaterialStore
from .keys import OperatorKeyStore
from .ledger import SharesLedger
from .oracle import StoredBeaconReport
from .registry import OperatorRecord, OperatorRegistry
from .rewards import Distribution, RewardDistributor

if TYPE_CHECKING:
    from stakepool.defs.resources import ConfigResource, DatabaseResource


@dataclass
class PoolComponents:
    """Everything bound to a single session"""

    session: Session
    state: PoolState
    registry: OperatorRegistry
    key_store: KeyMaterialStore
    oracle: BalanceOracle
    aggregator: AssetBalanceAggregator
    ledger: SharesLedger
    allocation: AllocationEngine
    rewards: RewardDistributor

    def asset_balance(self) -> int:
        return self.aggregator.compute_asset_balance(
            self.state.buffered_balance, self.state.deposited_validators
        )


class StakingPool:
    def __init__(
        self,
        db: "DatabaseResource",
        config: "ConfigResource",
        logger: Optional[logging.Logger] = None,
        access: Optional[AccessControl] = None,
        key_store_factory: Callable[..., KeyMaterialStore] = OperatorKeyStore,
        oracle_factory: Callable[[Session], BalanceOracle] = StoredBeaconReport,
        ledger_factory: Callable[..., SharesLedger] = SharesLedger,
    ):
        self.db = db
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.access = access or AdminGate(config.admin_addresses)
        self.key_store_factory = key_store_factory
        self.oracle_factory = oracle_factory
        self.ledger_factory = ledger_factory

    # ----------------------------
    # Wiring
    # ----------------------------

    @contextmanager
    def unit_of_work(self):
        """Yield freshly wired components; commit on success, roll back on error"""
        with self.db.get_session() as session:
            yield self._wire(session)

    def _wire(self, session: Session) -> PoolComponents:
        state = self._pool_state(session)
        registry = OperatorRegistry(session, self.logger)
        key_store = self.key_store_factory(session, self.logger)
        oracle = self.oracle_factory(session)
        aggregator = AssetBalanceAggregator(oracle, self.config.deposit_size)

        def pooled_balance() -> int:
            return aggregator.compute_asset_balance(
                state.buffered_balance, state.deposited_validators
            )

        ledger = self.ledger_factory(session, pooled_balance, self.logger)
        return PoolComponents(
            session=session,
            state=state,
            registry=registry,
            key_store=key_store,
            oracle=oracle,
            aggregator=aggregator,
            ledger=ledger,
            allocation=AllocationEngine(session, registry, key_store, self.logger),
            rewards=RewardDistributor(
                session,
                registry,
                ledger,
                self.config.treasury_address,
                self.config.fee_base,
                self.logger,
            ),
        )

    def _pool_state(self, session: Session) -> PoolState:
        # Row lock serializes units of work on backends that honor FOR UPDATE
        state = session.get(PoolState, 1, with_for_update=True)
        if state is None:
            state = PoolState(
                id=1,
                buffered_balance=0,
                deposited_validators=0,
                beacon_validators=0,
                beacon_balance=0,
                last_asset_balance=0,
                global_fee=self._checked_fraction("global_fee", self.config.global_fee),
                operator_rewards_share=self._checked_fraction(
                    "operator_rewards_share", self.config.operator_rewards_share
                ),
            )
            session.add(state)
            session.flush()
        return state

    def _checked_fraction(self, name: str, value: int) -> int:
        if not 0 <= value <= self.config.fee_base:
            raise InvalidArgument(f"{name} must be within [0, {self.config.fee_base}]")
        return value

    # ----------------------------
    # Deposits
    # ----------------------------

    def on_deposit(self, account: str, amount: int) -> int:
        """
        Accept ``amount`` from ``account`` into the buffer and mint its
        shares at the pre-deposit exchange rate.

        Returns:
            Shares minted to the depositor
        """
        if amount <= 0:
            raise InvalidArgument("Deposit amount must be positive")

        with self.unit_of_work() as c:
            shares = c.ledger.mint_shares(account, amount)
            c.state.buffered_balance = c.state.buffered_balance + amount
            self.logger.info(f"Deposit from {account}: {amount} -> {shares} shares")
            self._deposit_buffered(c)
        return shares

    def deposit_buffered(self) -> int:
        """Fund as many stake slots as the buffer covers; returns slots funded"""
        with self.unit_of_work() as c:
            return self._deposit_buffered(c)

    def _deposit_buffered(self, c: PoolComponents) -> int:
        deposit_size = self.config.deposit_size
        wanted = c.state.buffered_balance // deposit_size
        if wanted == 0:
            return 0

        assignments = c.allocation.assign(wanted)
        for operator_name, public_key, signature in assignments:
            c.session.add(
                SlotDeposit(
                    operator_name=operator_name,
                    public_key=public_key,
                    signature=signature,
                    amount=deposit_size,
                )
            )

        funded = len(assignments)
        c.state.buffered_balance = c.state.buffered_balance - funded * deposit_size
        c.state.deposited_validators = c.state.deposited_validators + funded
        c.session.flush()

        if funded:
            self.logger.info(
                f"Funded {funded} of {wanted} coverable slots; "
                f"{c.state.deposited_validators} deposited in total"
            )
        return funded

    # ----------------------------
    # Oracle
    # ----------------------------

    def report_beacon(
        self, caller: str, validators: int, balance: int
    ) -> Optional[Distribution]:
        """
        Record an oracle report and distribute any resulting balance growth.

        Args:
            caller: Reporting account, must be an admin
            validators: Slots the oracle sees live on the staking layer
            balance: Summed balance of those slots

        Returns:
            The Distribution, or None when the balance did not grow
        """
        require_admin(self.access, caller)

        with self.unit_of_work() as c:
            state = c.state
            if balance < 0:
                raise InvalidArgument("Reported balance must be non-negative")
            if validators > state.deposited_validators:
                raise InvalidArgument(
                    f"Reported {validators} validators but only "
                    f"{state.deposited_validators} were deposited"
                )
            if validators < state.beacon_validators:
                raise InvalidArgument(
                    f"Reported validator count decreased "
                    f"({state.beacon_validators} -> {validators})"
                )

            before = c.asset_balance()
            state.beacon_validators = validators
            state.beacon_balance = balance
            c.session.flush()
            after = c.asset_balance()

            self.logger.info(
                f"Oracle report: {validators} validators, balance {balance} "
                f"(pool {before} -> {after})"
            )

            distribution = None
            if after > before:
                distribution = c.rewards.distribute_earnings(
                    after - before,
                    after,
                    state.global_fee,
                    state.operator_rewards_share,
                )

            state.last_asset_balance = after
            state.last_report_at = datetime.now(timezone.utc)
        return distribution

    def report_stopped_validators(self, caller: str, name: str, stopped: int):
        require_admin(self.access, caller)
        with self.unit_of_work() as c:
            operator = c.registry.get(name)
            if stopped < operator.stopped:
                raise InvalidArgument(
                    f"Stopped count for {name} cannot decrease "
                    f"({operator.stopped} -> {stopped})"
                )
            if stopped > operator.funded:
                raise InvalidArgument(
                    f"Stopped count {stopped} exceeds funded {operator.funded} for {name}"
                )
            c.registry.set(name, replace(operator, stopped=stopped))

    def distribute_earnings(self, caller: str, amount: int) -> Distribution:
        """Distribute ``amount`` of growth against the current pool balance"""
        require_admin(self.access, caller)
        with self.unit_of_work() as c:
            return c.rewards.distribute_earnings(
                amount,
                c.asset_balance(),
                c.state.global_fee,
                c.state.operator_rewards_share,
            )

    # ----------------------------
    # Operator administration
    # ----------------------------

    def add_operator(
        self, caller: str, name: str, operator_address: str, staking_limit: int = 0
    ) -> int:
        require_admin(self.access, caller)
        with self.unit_of_work() as c:
            try:
                c.registry.get(name)
            except OperatorNotFound:
                pass
            else:
                raise InvalidArgument(f"Operator {name!r} already exists")

            return c.registry.set(
                name,
                OperatorRecord(
                    name=name,
                    operator_address=operator_address,
                    limit=staking_limit,
                ),
            )

    def set_operator_limit(self, caller: str, name: str, limit: int) -> int:
        require_admin(self.access, caller)
        with self.unit_of_work() as c:
            operator = c.registry.get(name)
            return c.registry.set(name, replace(operator, limit=limit))

    def set_operator_active(self, caller: str, name: str, active: bool) -> int:
        require_admin(self.access, caller)
        with self.unit_of_work() as c:
            operator = c.registry.get(name)
            self.logger.info(f"Operator {name} active={active}")
            return c.registry.set(name, replace(operator, active=active))

    def add_signing_keys(
        self,
        caller: str,
        name: str,
        public_keys: Sequence[bytes],
        signatures: Sequence[bytes],
    ) -> int:
        """Returns the operator's key count after the append"""
        require_admin(self.access, caller)
        with self.unit_of_work() as c:
            operator = c.registry.get(name)
            total = c.key_store.add_keys(name, public_keys, signatures)
            c.registry.set(name, replace(operator, keys=total))
        return total

    # ----------------------------
    # Fees
    # ----------------------------

    def set_global_fee(self, caller: str, fee: int):
        require_admin(self.access, caller)
        with self.unit_of_work() as c:
            c.state.global_fee = self._checked_fraction("global_fee", fee)
        self.logger.info(f"Global fee set to {fee}/{self.config.fee_base}")

    def set_operator_rewards_share(self, caller: str, share: int):
        require_admin(self.access, caller)
        with self.unit_of_work() as c:
            c.state.operator_rewards_share = self._checked_fraction(
                "operator_rewards_share", share
            )
        self.logger.info(f"Operator rewards share set to {share}/{self.config.fee_base}")

    # ----------------------------
    # Views
    # ----------------------------

    def get_operator(self, name: str) -> OperatorRecord:
        with self.unit_of_work() as c:
            return c.registry.get(name)

    def get_operator_by_index(self, index: int) -> OperatorRecord:
        with self.unit_of_work() as c:
            return c.registry.get_by_index(index)

    def get_operator_count(self) -> int:
        with self.unit_of_work() as c:
            return c.registry.get_count()

    def list_operators(self) -> List[OperatorRecord]:
        with self.unit_of_work() as c:
            return c.registry.get_all()

    def total_asset_balance(self) -> int:
        with self.unit_of_work() as c:
            return c.asset_balance()

    def total_shares(self) -> int:
        with self.unit_of_work() as c:
            return c.ledger.total_shares()

    def shares_of(self, account: str) -> int:
        with self.unit_of_work() as c:
            return c.ledger.shares_of(account)

    def balance_of(self, account: str) -> int:
        with self.unit_of_work() as c:
            return c.ledger.balance_of(account)

    def fee_parameters(self) -> dict:
        with self.unit_of_work() as c:
            return {
                "fee_base": self.config.fee_base,
                "global_fee": c.state.global_fee,
                "operator_rewards_share": c.state.operator_rewards_share,
            }
