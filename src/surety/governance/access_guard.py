"""Access guard: the owner-controlled operational kill-switch.

Rules:
- The owner identity is fixed at construction and never changes.
- Only the owner may change the operational flag.
- Every mutating operation elsewhere calls require_operational() first.
- A halt is deliberate and manually reversible. Nothing retries.
"""

from __future__ import annotations

from surety.errors import ContractPaused, Unauthorized
from surety.identity.addresses import normalize_address
from surety.models.membership import OperationalState


class AccessGuard:
    """Operational flag plus a single flat owner check."""

    def __init__(self, owner: str) -> None:
        self._state = OperationalState(owner=normalize_address(owner))

    @property
    def owner(self) -> str:
        return self._state.owner

    def is_operational(self) -> bool:
        return self._state.operational

    def is_owner(self, caller: str) -> bool:
        return normalize_address(caller) == self._state.owner

    def require_owner(self, caller: str) -> None:
        if not self.is_owner(caller):
            raise Unauthorized(f"Caller {caller} is not the contract owner")

    def require_operational(self) -> None:
        if not self._state.operational:
            raise ContractPaused("Contract is not operational")

    def set_operating_status(self, caller: str, mode: bool) -> bool:
        """Set the operational flag. Owner only.

        Returns True if the flag changed, False if it already had ``mode``.

        Raises:
            Unauthorized: If ``caller`` is not the owner.
        """
        self.require_owner(caller)
        mode = bool(mode)
        if self._state.operational == mode:
            return False
        self._state.operational = mode
        return True
