# CORE OPERATOR TABLES
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    Numeric,
    String,
    UniqueConstraint,
)

from .base import Base, TimestampMixin, utcnow


class Operator(Base, TimestampMixin):
    __tablename__ = "operators"

    # Identity
    name = Column(String(100), primary_key=True)
    # Registration order; assigned once on insert and never reassigned
    position = Column(Integer, nullable=False, unique=True)
    operator_address = Column(String, nullable=False)

    # Operational Status (soft delete only)
    active = Column(Boolean, nullable=False, default=True)

    # Capacity
    staking_limit = Column(BigInteger, nullable=False, default=0)
    keys = Column(BigInteger, nullable=False, default=0)

    # Counts
    funded = Column(BigInteger, nullable=False, default=0)
    stopped = Column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        Index("idx_operator_position", "position"),
        Index("idx_operator_active", "active"),
    )


class OperatorSigningKey(Base, TimestampMixin):
    __tablename__ = "operator_signing_keys"

    operator_name = Column(
        String(100),
        ForeignKey("operators.name", ondelete="CASCADE"),
        primary_key=True,
    )
    key_index = Column(BigInteger, primary_key=True)

    public_key = Column(LargeBinary, nullable=False)
    signature = Column(LargeBinary, nullable=False)

    __table_args__ = (
        UniqueConstraint("public_key", name="uix_operator_signing_key_pubkey"),
    )


# ========================================
# AUDIT TABLES
# ========================================


class OperatorFundedEvent(Base):
    """Append-only record of every funded-count change"""

    __tablename__ = "operator_funded_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    operator_name = Column(String(100), nullable=False, index=True)
    slots_assigned = Column(BigInteger, nullable=False)
    new_funded = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


# ========================================
# ANALYTICS TABLES
# ========================================


class FundingConcentrationSnapshot(Base):
    """Point-in-time concentration of funded slots across operators"""

    __tablename__ = "funding_concentration_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    snapshot_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    operator_count = Column(Integer, nullable=False)
    fundable_operator_count = Column(Integer, nullable=False)
    total_funded = Column(BigInteger, nullable=False)
    total_active_validators = Column(BigInteger, nullable=False)

    funded_hhi = Column(Numeric(10, 6))
    funded_gini = Column(Numeric(10, 6))
    funded_top_n_percentage = Column(Numeric(8, 4))
    funded_coefficient_of_variation = Column(Numeric(10, 6))
    active_hhi = Column(Numeric(10, 6))
    effective_operators = Column(Numeric(10, 4))
