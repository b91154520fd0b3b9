# services/registry.py
"""
Operator Registry - persistent keyed collection of staking operators
"""

from dataclasses import dataclass, fields
from typing import List, Optional, Tuple
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stakepool.db.models.operators import Operator
from .errors import InvalidArgument, OperatorNotFound, OperatorNotFoundAtIndex


@dataclass
class OperatorRecord:
    """Detached snapshot of one operator row"""

    name: str
    operator_address: str
    active: bool = True
    limit: int = 0
    keys: int = 0
    funded: int = 0
    stopped: int = 0

    @property
    def active_validators(self) -> int:
        return max(self.funded - self.stopped, 0)

    @property
    def capacity(self) -> int:
        """Slots this operator can still absorb: min(keys, limit) - funded"""
        return max(min(self.keys, self.limit) - self.funded, 0)

    @property
    def fundable(self) -> bool:
        return self.active and self.capacity > 0

    @classmethod
    def from_row(cls, row: Operator) -> "OperatorRecord":
        return cls(
            name=row.name,
            operator_address=row.operator_address,
            active=bool(row.active),
            limit=row.staking_limit,
            keys=row.keys,
            funded=row.funded,
            stopped=row.stopped,
        )

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class OperatorRegistry:
    """
    Operators keyed by name, each pinned to the position it was first
    inserted at. Operators are never removed; deactivation only flips
    the active flag.
    """

    def __init__(self, session: Session, logger: Optional[logging.Logger] = None):
        self.session = session
        self.logger = logger or logging.getLogger(__name__)

    # ----------------------------
    # Lookups
    # ----------------------------

    def get(self, name: str) -> OperatorRecord:
        return OperatorRecord.from_row(self._row(name))

    def get_by_index(self, index: int) -> OperatorRecord:
        row = None
        if index >= 0:
            row = self.session.execute(
                select(Operator).where(Operator.position == index)
            ).scalar_one_or_none()
        if row is None:
            raise OperatorNotFoundAtIndex(index)
        return OperatorRecord.from_row(row)

    def get_index(self, name: str) -> int:
        return self._row(name).position

    def get_count(self) -> int:
        return self.session.execute(select(func.count(Operator.name))).scalar_one()

    # ----------------------------
    # Derived views
    # ----------------------------

    def get_all(self) -> List[OperatorRecord]:
        rows = self.session.execute(
            select(Operator).order_by(Operator.position)
        ).scalars()
        return [OperatorRecord.from_row(row) for row in rows]

    def get_all_active(self) -> List[OperatorRecord]:
        """Snapshot of active operators in registration order"""
        rows = self.session.execute(
            select(Operator)
            .where(Operator.active.is_(True))
            .order_by(Operator.position)
        ).scalars()
        return [OperatorRecord.from_row(row) for row in rows]

    def get_all_fundable(self) -> List[Tuple[OperatorRecord, int]]:
        """
        Snapshot of operators that can absorb at least one more slot,
        paired with their registry index.

        An operator is fundable when it is active and both its supplied
        keys and its staking limit exceed its funded count.
        """
        rows = self.session.execute(
            select(Operator)
            .where(
                Operator.active.is_(True),
                Operator.keys > Operator.funded,
                Operator.staking_limit > Operator.funded,
            )
            .order_by(Operator.position)
        ).scalars()
        return [(OperatorRecord.from_row(row), row.position) for row in rows]

    # ----------------------------
    # Mutation
    # ----------------------------

    def set(self, name: str, record: OperatorRecord) -> int:
        """
        Insert or update the operator registered under ``name``.

        Args:
            name: Stable operator identifier
            record: Full operator state to store

        Returns:
            The operator's registry index. Updates keep the index assigned
            on first insertion.
        """
        if record.name != name:
            raise InvalidArgument(
                f"Record name {record.name!r} does not match key {name!r}"
            )
        self._validate(record)

        row = self.session.get(Operator, name)
        if row is None:
            position = self.session.execute(
                select(func.coalesce(func.max(Operator.position), -1) + 1)
            ).scalar_one()
            row = Operator(name=name, position=position)
            self.session.add(row)
            self.logger.info(f"Registered operator {name} at index {position}")

        row.operator_address = record.operator_address
        row.active = record.active
        row.staking_limit = record.limit
        row.keys = record.keys
        row.funded = record.funded
        row.stopped = record.stopped
        self.session.flush()

        return row.position

    # ----------------------------
    # Internals
    # ----------------------------

    def _row(self, name: str) -> Operator:
        row = self.session.get(Operator, name)
        if row is None:
            raise OperatorNotFound(name)
        return row

    @staticmethod
    def _validate(record: OperatorRecord):
        for field_name in ("limit", "keys", "funded", "stopped"):
            if getattr(record, field_name) < 0:
                raise InvalidArgument(
                    f"Operator {record.name}: {field_name} must be non-negative"
                )
        if record.stopped > record.funded:
            raise InvalidArgument(
                f"Operator {record.name}: stopped ({record.stopped}) "
                f"exceeds funded ({record.funded})"
            )
        if not record.operator_address:
            raise InvalidArgument(f"Operator {record.name}: missing payout address")
