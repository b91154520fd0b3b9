# services/oracle.py
from sqlalchemy.orm import Session

from stakepool.db.models.pool import PoolState


class StoredBeaconReport:
    """Oracle reads served from the last report recorded in pool_state"""

    def __init__(self, session: Session):
        self.session = session

    def _state(self) -> PoolState:
        state = self.session.get(PoolState, 1)
        if state is None:
            raise LookupError("pool_state has not been initialised")
        return state

    def reported_validator_count(self) -> int:
        return self._state().beacon_validators

    def reported_balance_sum(self) -> int:
        return self._state().beacon_balance
