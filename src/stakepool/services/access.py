# services/access.py
from typing import Iterable

from .errors import Unauthorized


class AdminGate:
    """Access control backed by a fixed set of admin addresses"""

    def __init__(self, admin_addresses: Iterable[str]):
        self.admin_addresses = {address.lower() for address in admin_addresses}

    def is_admin(self, caller: str) -> bool:
        return bool(caller) and caller.lower() in self.admin_addresses


def require_admin(access, caller: str):
    if not access.is_admin(caller):
        raise Unauthorized(caller)
