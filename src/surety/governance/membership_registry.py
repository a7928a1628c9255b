"""Membership registry: airline registration, funding, and vote tallies.

Architecture:
- MembershipRegistry owns the MembershipState aggregate outright.
- It applies single, already-authorised mutations. Sponsor policy
  (who may sponsor, bootstrap vs consensus) lives in the gateway.
- Every write checks the AccessGuard first.

Invariants:
- Funding only accumulates. There is no withdrawal or refund path.
- A candidate's vote record is opened by its first vote and removed the
  moment the candidate is registered.
- No voter appears twice in one vote record.
- A registered airline is never demoted.
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Optional

from surety.errors import AlreadyRegistered, DuplicateVote, InvalidAmount
from surety.governance.access_guard import AccessGuard
from surety.identity.addresses import normalize_address
from surety.models.membership import (
    MembershipState,
    Participant,
    RegistrationPath,
    VoteRecord,
)


class MembershipRegistry:
    """Participant lifecycle store gated by an AccessGuard.

    Usage:
        registry = MembershipRegistry(guard, minimum_funding=10 * 10**18)
        registry.record_funding(addr, 10 * 10**18)
        registry.register_direct(candidate, RegistrationPath.BOOTSTRAP)
        tally = registry.cast_vote(candidate, voter)
    """

    def __init__(
        self,
        guard: AccessGuard,
        minimum_funding: int,
        state: Optional[MembershipState] = None,
    ) -> None:
        if minimum_funding <= 0:
            raise ValueError(
                f"minimum_funding must be positive, got {minimum_funding}"
            )
        self._guard = guard
        self._minimum_funding = minimum_funding
        self._state = state if state is not None else MembershipState()

    @classmethod
    def from_records(
        cls,
        guard: AccessGuard,
        minimum_funding: int,
        record: dict[str, Any],
    ) -> MembershipRegistry:
        """Restore registry state from a to_records() payload."""
        state = MembershipState.from_record(record, minimum_funding)
        return cls(guard, minimum_funding, state=state)

    def to_records(self) -> dict[str, Any]:
        return self._state.to_record()

    @property
    def version(self) -> int:
        return self._state.version

    @property
    def minimum_funding(self) -> int:
        return self._minimum_funding

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_funding(self, participant: str, amount: int) -> Participant:
        """Credit ``amount`` wei to ``participant``.

        Repeated calls accumulate. There is no upper bound.

        Raises:
            OperationalHalt: If the guard is paused.
            InvalidAmount: If ``amount`` is not a positive integer.
        """
        self._guard.require_operational()
        address = normalize_address(participant)
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(
                f"Funding amount must be a positive wei integer, got {amount!r}"
            )

        entry = self._get_or_create(address)
        entry.credit(amount)
        self._state.version += 1
        return entry

    def register_direct(
        self,
        candidate: str,
        via: RegistrationPath = RegistrationPath.BOOTSTRAP,
        now: Optional[datetime] = None,
    ) -> Participant:
        """Mark ``candidate`` as registered, unconditionally.

        Called by the gateway for the genesis airline, during bootstrap,
        and once a consensus tally crosses the threshold. Any open vote
        record for the candidate is closed.

        Raises:
            OperationalHalt: If the guard is paused.
            AlreadyRegistered: If ``candidate`` is already registered.
        """
        self._guard.require_operational()
        address = normalize_address(candidate)
        if self.is_airline(address):
            raise AlreadyRegistered(f"Airline {address} is already registered")
        if now is None:
            now = datetime.now(timezone.utc)

        seq = self.registered_count() + 1
        entry = self._get_or_create(address)
        entry.is_registered = True
        entry.registered_via = via
        entry.registered_utc = now
        entry.registration_seq = seq
        self._state.votes.pop(address, None)
        self._state.version += 1
        return entry

    def cast_vote(
        self,
        candidate: str,
        voter: str,
        now: Optional[datetime] = None,
    ) -> int:
        """Record ``voter``'s vote for ``candidate`` and return the new tally.

        The first vote for a candidate opens its record; an unknown
        candidate is not an error.

        Raises:
            OperationalHalt: If the guard is paused.
            AlreadyRegistered: If ``candidate`` is already registered.
            DuplicateVote: If ``voter`` already voted for ``candidate``.
        """
        self._guard.require_operational()
        cand = normalize_address(candidate)
        who = normalize_address(voter)
        if self.is_airline(cand):
            raise AlreadyRegistered(f"Airline {cand} is already registered")

        record = self._state.votes.get(cand)
        if record is not None and record.has_voted(who):
            raise DuplicateVote(f"{who} has already voted for {cand}")
        if now is None:
            now = datetime.now(timezone.utc)

        if record is None:
            record = VoteRecord(candidate=cand, opened_utc=now)
            self._state.votes[cand] = record
        self._get_or_create(cand)
        record.voters.append(who)
        self._state.version += 1
        return record.tally

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def is_airline(self, participant: str) -> bool:
        entry = self._state.participants.get(normalize_address(participant))
        return entry is not None and entry.is_registered

    def is_funded(self, participant: str) -> bool:
        entry = self._state.participants.get(normalize_address(participant))
        return entry is not None and entry.is_funded

    def funded_amount(self, participant: str) -> int:
        entry = self._state.participants.get(normalize_address(participant))
        return entry.funded_amount if entry is not None else 0

    def get_participant(self, participant: str) -> Optional[Participant]:
        return self._state.participants.get(normalize_address(participant))

    def get_vote_record(self, candidate: str) -> Optional[VoteRecord]:
        return self._state.votes.get(normalize_address(candidate))

    def registered_count(self) -> int:
        return sum(1 for p in self._state.participants.values() if p.is_registered)

    def registered_airlines(self) -> list[str]:
        """Registered airlines in registration order."""
        registered = [p for p in self._state.participants.values() if p.is_registered]
        registered.sort(key=lambda p: p.registration_seq or 0)
        return [p.address for p in registered]

    def pending_candidates(self) -> list[str]:
        return list(self._state.votes)

    # ------------------------------------------------------------------
    # Commit support
    # ------------------------------------------------------------------

    def snapshot(self) -> MembershipState:
        """Deep copy of the aggregate, for all-or-nothing commits."""
        return copy.deepcopy(self._state)

    def restore(self, snapshot: MembershipState) -> None:
        self._state = snapshot

    def _get_or_create(self, address: str) -> Participant:
        entry = self._state.participants.get(address)
        if entry is None:
            entry = Participant(
                address=address, minimum_funding=self._minimum_funding,
            )
            self._state.participants[address] = entry
        return entry
