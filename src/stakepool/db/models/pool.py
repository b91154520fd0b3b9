# POOL ACCOUNTING TABLES
from sqlalchemy import BigInteger, Column, DateTime, Integer, LargeBinary, String

from .base import Amount, Base, TimestampMixin, utcnow


class PoolState(Base, TimestampMixin):
    """Singleton row holding the pool's aggregate accounting"""

    __tablename__ = "pool_state"

    id = Column(Integer, primary_key=True, default=1)

    # Liquid balance not yet deployed into stake slots
    buffered_balance = Column(Amount, nullable=False, default=0)
    # Slots funded by the pool, tracked independently of operator rows
    deposited_validators = Column(BigInteger, nullable=False, default=0)

    # Last oracle report
    beacon_validators = Column(BigInteger, nullable=False, default=0)
    beacon_balance = Column(Amount, nullable=False, default=0)
    last_report_at = Column(DateTime(timezone=True))
    last_asset_balance = Column(Amount, nullable=False, default=0)

    # Fee parameters, fractions of fee_base
    global_fee = Column(Integer, nullable=False)
    operator_rewards_share = Column(Integer, nullable=False)


class ShareBalance(Base, TimestampMixin):
    __tablename__ = "share_balances"

    account = Column(String, primary_key=True)
    shares = Column(Amount, nullable=False, default=0)


class SlotDeposit(Base):
    """One row per stake slot funded from the buffer"""

    __tablename__ = "slot_deposits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    operator_name = Column(String, nullable=False, index=True)
    public_key = Column(LargeBinary, nullable=False, unique=True)
    signature = Column(LargeBinary, nullable=False)
    amount = Column(Amount, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class EarningsDistributedEvent(Base):
    __tablename__ = "earnings_distributed_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    amount = Column(Amount, nullable=False)
    shares_to_mint = Column(Amount, nullable=False)
    operator_rewards = Column(Amount, nullable=False)
    operator_minted = Column(Amount, nullable=False)
    treasury_amount = Column(Amount, nullable=False)
    total_active_validators = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
