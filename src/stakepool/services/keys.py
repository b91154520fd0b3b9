# services/keys.py
"""
Key Material Store - validator public keys and deposit signatures per operator
"""

from typing import List, Optional, Sequence, Tuple
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stakepool.db.models.operators import OperatorSigningKey
from .errors import InvalidArgument


class OperatorKeyStore:
    def __init__(self, session: Session, logger: Optional[logging.Logger] = None):
        self.session = session
        self.logger = logger or logging.getLogger(__name__)

    def key_count(self, operator_name: str) -> int:
        return self.session.execute(
            select(func.count(OperatorSigningKey.key_index)).where(
                OperatorSigningKey.operator_name == operator_name
            )
        ).scalar_one()

    def add_keys(
        self,
        operator_name: str,
        public_keys: Sequence[bytes],
        signatures: Sequence[bytes],
    ) -> int:
        """
        Append key/signature pairs after the operator's existing keys.

        Returns:
            The operator's key count after the append
        """
        if len(public_keys) != len(signatures):
            raise InvalidArgument(
                f"Got {len(public_keys)} keys but {len(signatures)} signatures"
            )
        if not public_keys:
            raise InvalidArgument("No keys supplied")

        next_index = self.key_count(operator_name)
        for offset, (public_key, signature) in enumerate(zip(public_keys, signatures)):
            self.session.add(
                OperatorSigningKey(
                    operator_name=operator_name,
                    key_index=next_index + offset,
                    public_key=bytes(public_key),
                    signature=bytes(signature),
                )
            )
        self.session.flush()

        total = next_index + len(public_keys)
        self.logger.info(
            f"Added {len(public_keys)} signing keys for {operator_name} (total {total})"
        )
        return total

    def fetch_keys(
        self, operator_name: str, offset: int, count: int
    ) -> Tuple[List[bytes], List[bytes]]:
        if count <= 0:
            return [], []
        rows = self.session.execute(
            select(OperatorSigningKey)
            .where(
                OperatorSigningKey.operator_name == operator_name,
                OperatorSigningKey.key_index >= offset,
                OperatorSigningKey.key_index < offset + count,
            )
            .order_by(OperatorSigningKey.key_index)
        ).scalars().all()

        if len(rows) != count:
            raise InvalidArgument(
                f"Operator {operator_name} has {len(rows)} keys at offset {offset}, "
                f"{count} requested"
            )
        return [row.public_key for row in rows], [row.signature for row in rows]
