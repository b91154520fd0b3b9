# /stakepool/defs/resources.py
"""
Dagster Resources for database connections and protocol configuration
"""
from dagster import ConfigurableResource
from pydantic import PrivateAttr
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import List
import os

from stakepool.db.models.base import Base

# Register every model on Base.metadata
from stakepool.db.models import operators, pool  # noqa: F401


def admin_addresses_from_env() -> List[str]:
    """Comma-separated admin accounts from STAKEPOOL_ADMINS"""
    return [
        address.strip()
        for address in os.getenv("STAKEPOOL_ADMINS", "").split(",")
        if address.strip()
    ]


class DatabaseResource(ConfigurableResource):
    """Database resource holding the pool's state store"""

    database_url: str = os.getenv("STAKEPOOL_DB_URL", "sqlite://")

    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30

    # Create missing tables the first time the engine is built
    auto_create_schema: bool = True

    _engine = PrivateAttr(default=None)
    _SessionLocal = PrivateAttr(default=None)

    @property
    def engine(self):
        """Lazy initialization of the state database engine"""
        if self._engine is None:
            if self.database_url.startswith("sqlite"):
                # In-memory SQLite lives on a single shared connection
                in_memory = self.database_url in ("sqlite://", "sqlite:///:memory:")
                self._engine = create_engine(
                    self.database_url,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool if in_memory else None,
                    echo=False,
                )
            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=self.pool_size,
                    max_overflow=self.max_overflow,
                    pool_timeout=self.pool_timeout,
                    echo=False,
                )
            if self.auto_create_schema:
                Base.metadata.create_all(self._engine)
        return self._engine

    @property
    def SessionLocal(self):
        """Session factory for the state database"""
        if self._SessionLocal is None:
            self._SessionLocal = sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
            )
        return self._SessionLocal

    @contextmanager
    def get_session(self):
        """
        Context manager for one atomic unit of work.

        Everything done through the yielded session is committed together,
        or rolled back together if the block raises.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_schema(self):
        """Create all pool tables that do not exist yet"""
        Base.metadata.create_all(self.engine)


class ConfigResource(ConfigurableResource):
    """Configuration resource for protocol parameters"""

    # Fixed-point denominator for fee fractions (100000 = 100%)
    fee_base: int = 100_000

    # Initial fee parameters, seeded into pool_state on first use
    global_fee: int = 10_000
    operator_rewards_share: int = 50_000

    # Size of a single stake slot, in the smallest base-asset unit
    deposit_size: int = 32 * 10**18

    # Accounts
    treasury_address: str = os.getenv("STAKEPOOL_TREASURY", "treasury")
    admin_addresses: List[str] = admin_addresses_from_env()

    # Analytics settings
    top_n_operators: int = 5

    # Monitoring
    enable_detailed_logging: bool = True
    log_batch_progress_every: int = 10  # Log every N operators
