# services/allocation.py
"""
Allocation Engine - hands newly funded stake slots to operators
"""

from dataclasses import replace
from typing import List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from stakepool.db.models.operators import OperatorFundedEvent
from .errors import InvalidArgument
from .interfaces import KeyMaterialStore
from .registry import OperatorRecord, OperatorRegistry

# (operator_name, public_key, signature)
SlotAssignment = Tuple[str, bytes, bytes]


class AllocationEngine:
    """
    Assigns slots to the least-funded fundable operator, one batch at a
    time, until the request is covered or no operator can absorb more.
    """

    def __init__(
        self,
        session: Session,
        registry: OperatorRegistry,
        key_store: KeyMaterialStore,
        logger: Optional[logging.Logger] = None,
    ):
        self.session = session
        self.registry = registry
        self.key_store = key_store
        self.logger = logger or logging.getLogger(__name__)

    def allocate(self, requested_amount: int) -> Tuple[List[bytes], List[bytes]]:
        """
        Fund up to ``requested_amount`` slots.

        Args:
            requested_amount: Number of slots wanted

        Returns:
            Tuple of (public_keys, signatures) in assignment order. Fewer
            pairs than requested means the fundable operators ran out of
            capacity.
        """
        assignments = self.assign(requested_amount)
        return (
            [public_key for _, public_key, _ in assignments],
            [signature for _, _, signature in assignments],
        )

    def assign(self, requested_amount: int) -> List[SlotAssignment]:
        """Same as allocate, keeping the operator name of every slot"""
        if requested_amount < 0:
            raise InvalidArgument("requested_amount must be non-negative")

        assignments: List[SlotAssignment] = []
        remaining = requested_amount

        while remaining > 0:
            # Re-read after every mutation; a stale view would over-allocate
            fundable = self.registry.get_all_fundable()
            if not fundable:
                break

            operator, index = self._least_funded(fundable)
            batch = min(
                operator.capacity, remaining, self._gap_to_next(operator, fundable)
            )

            keys, sigs = self.key_store.fetch_keys(
                operator.name, operator.funded, batch
            )
            assignments.extend((operator.name, key, sig) for key, sig in zip(keys, sigs))

            self._record_funding(operator, index, batch)
            remaining -= batch

        if remaining > 0 and requested_amount > 0:
            self.logger.warning(
                f"Allocated {requested_amount - remaining} of {requested_amount} "
                f"requested slots; no fundable operator left"
            )

        return assignments

    @staticmethod
    def _least_funded(
        fundable: List[Tuple[OperatorRecord, int]],
    ) -> Tuple[OperatorRecord, int]:
        # Lowest index wins ties
        return min(fundable, key=lambda pair: (pair[0].funded, pair[1]))

    @staticmethod
    def _gap_to_next(
        operator: OperatorRecord, fundable: List[Tuple[OperatorRecord, int]]
    ) -> int:
        """Slots the operator can take before another becomes least funded"""
        others = [op.funded for op, _ in fundable if op.name != operator.name]
        if not others:
            return operator.capacity
        return max(min(others) - operator.funded, 1)

    def _record_funding(self, operator: OperatorRecord, index: int, batch: int):
        new_funded = operator.funded + batch
        self.registry.set(operator.name, replace(operator, funded=new_funded))

        self.session.add(
            OperatorFundedEvent(
                operator_name=operator.name,
                slots_assigned=batch,
                new_funded=new_funded,
            )
        )
        self.logger.info(
            f"Operator {operator.name} (index {index}) funded: "
            f"+{batch} -> {new_funded}"
        )
