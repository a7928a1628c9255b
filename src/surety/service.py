"""Governance gateway: the externally callable surface of the governance core.

This is the primary interface for collaborators (the insurance ledger, the
oracle-status module, clients). It orchestrates:
- The operational kill-switch (AccessGuard)
- Funding deposits (MembershipRegistry.record_funding)
- Sponsor-gated airline registration, bootstrap or vote-based
- Read-only membership queries

Policy for register_airline, in check order:
1. Contract must be operational            (ContractPaused)
2. Sponsor must be a registered airline    (SponsorNotRegistered)
3. Sponsor must be funded                  (SponsorNotFunded)
4. Candidate must not be registered        (AlreadyRegistered)
5. Fewer than bootstrap_threshold airlines registered: register directly.
   Otherwise the call is the sponsor's vote, and the candidate is
   registered once the tally reaches ceil(registered / 2).

Every mutating call is serialized and all-or-nothing: a call that raises
leaves the membership aggregate, the operational flag and the event log
exactly as they were. Rejections are raised to the caller, never logged
or suppressed here.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from surety.errors import (
    AlreadyRegistered,
    SponsorNotFunded,
    SponsorNotRegistered,
)
from surety.governance.access_guard import AccessGuard
from surety.governance.membership_registry import MembershipRegistry
from surety.identity.addresses import normalize_address
from surety.models.membership import RegistrationPath
from surety.observability.logging import get_logger_for_component
from surety.persistence.event_log import EventKind, EventLog, EventRecord
from surety.policy.resolver import PolicyResolver

T = TypeVar("T")


@dataclass(frozen=True)
class FundingReceipt:
    """Result of a funding deposit."""
    airline: str
    amount: int
    total_funded: int
    is_funded: bool
    became_funded: bool  # True only for the deposit that crossed the minimum


@dataclass(frozen=True)
class RegistrationResult:
    """Result of a register_airline call.

    In bootstrap phase registered is always True and votes is 0. In
    consensus phase votes is the candidate's tally after this call.
    """
    candidate: str
    sponsor: str
    registered: bool
    via: Optional[RegistrationPath]
    votes: int
    votes_required: int


class GovernanceGateway:
    """Membership and kill-switch facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        gateway = GovernanceGateway(resolver, owner=owner, first_airline=first)

        gateway.deposit_funding(first, Web3.to_wei(10, "ether"))
        result = gateway.register_airline(first, candidate)

    Persistence (optional):
        gateway = GovernanceGateway(resolver, owner, first, event_log=log)
        records = gateway.to_records()
        restored = GovernanceGateway(resolver, owner, first, records=records)
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        owner: str,
        first_airline: str,
        event_log: Optional[EventLog] = None,
        records: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self._resolver = resolver
        self._guard = AccessGuard(owner)
        self._event_log = event_log
        self._lock = threading.Lock()
        self._log = get_logger_for_component("governance_gateway")
        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = event_log.count if event_log is not None else 0

        first = normalize_address(first_airline)
        if records is not None:
            recorded_owner = normalize_address(records["owner"])
            if recorded_owner != self._guard.owner:
                raise ValueError(
                    f"Restored owner {recorded_owner} does not match {self._guard.owner}"
                )
            self._registry = MembershipRegistry.from_records(
                self._guard, resolver.minimum_funding_wei(), records["membership"],
            )
            if not self._registry.is_airline(first):
                raise ValueError(
                    f"Restored membership does not include first airline {first}"
                )
            if not records.get("operational", True):
                self._guard.set_operating_status(self._guard.owner, False)
            return

        self._registry = MembershipRegistry(
            self._guard, resolver.minimum_funding_wei(),
        )

        def _genesis(pending: list[EventRecord]) -> None:
            self._admit(first, RegistrationPath.GENESIS, self._guard.owner, pending, now)

        self._commit(_genesis)
        self._log.info("governance_initialised", owner=self._guard.owner, first_airline=first)

    # ------------------------------------------------------------------
    # Operational status
    # ------------------------------------------------------------------

    def is_operational(self) -> bool:
        return self._guard.is_operational()

    def require_operational(self) -> None:
        """Raise ContractPaused unless operational.

        Collaborators (such as the flight-status oracle) call this before
        applying any update of their own.
        """
        self._guard.require_operational()

    def set_operating_status(
        self, caller: str, mode: bool, now: Optional[datetime] = None,
    ) -> None:
        """Turn the kill-switch on or off. Owner only.

        Raises:
            Unauthorized: If ``caller`` is not the owner.
        """
        with self._lock:
            previous = self._guard.is_operational()
            changed = self._guard.set_operating_status(caller, mode)
            if not changed:
                return
            event = self._new_event(
                EventKind.OPERATING_STATUS_CHANGED,
                self._guard.owner,
                {"operational": bool(mode)},
                now,
            )
            try:
                self._append_events([event])
            except Exception:
                self._event_counter -= 1
                self._guard.set_operating_status(self._guard.owner, previous)
                raise
        self._log.info("operating_status_changed", operational=bool(mode))

    # ------------------------------------------------------------------
    # Funding
    # ------------------------------------------------------------------

    def deposit_funding(
        self, caller: str, amount: int, now: Optional[datetime] = None,
    ) -> FundingReceipt:
        """Credit ``amount`` wei to ``caller``'s accumulated funding.

        The caller becomes funded the instant the total reaches the
        minimum. Overpayment is kept and credited. There is no refund.

        Raises:
            ContractPaused: If the contract is halted.
            InvalidAmount: If ``amount`` is not a positive wei integer.
        """
        airline = normalize_address(caller)

        def _deposit(pending: list[EventRecord]) -> FundingReceipt:
            was_funded = self._registry.is_funded(airline)
            entry = self._registry.record_funding(airline, amount)
            pending.append(self._new_event(
                EventKind.FUNDING_DEPOSITED,
                airline,
                {"amount": str(amount), "total_funded": str(entry.funded_amount)},
                now,
            ))
            became_funded = entry.is_funded and not was_funded
            if became_funded:
                pending.append(self._new_event(
                    EventKind.AIRLINE_FUNDED,
                    airline,
                    {"total_funded": str(entry.funded_amount)},
                    now,
                ))
            return FundingReceipt(
                airline=airline,
                amount=amount,
                total_funded=entry.funded_amount,
                is_funded=entry.is_funded,
                became_funded=became_funded,
            )

        with self._lock:
            self._guard.require_operational()
            receipt = self._commit(_deposit)

        self._log.info(
            "funding_deposited",
            airline=airline,
            amount=amount,
            total_funded=receipt.total_funded,
            became_funded=receipt.became_funded,
        )
        return receipt

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_airline(
        self, sponsor: str, candidate: str, now: Optional[datetime] = None,
    ) -> RegistrationResult:
        """Register ``candidate`` on behalf of ``sponsor``, or vote for it.

        Raises:
            ContractPaused: If the contract is halted.
            SponsorNotRegistered: If ``sponsor`` is not a registered airline.
            SponsorNotFunded: If ``sponsor`` has not reached minimum funding.
            AlreadyRegistered: If ``candidate`` is already registered.
            DuplicateVote: If ``sponsor`` already voted for ``candidate``.
        """
        who = normalize_address(sponsor)
        cand = normalize_address(candidate)

        with self._lock:
            self._guard.require_operational()
            if not self._registry.is_airline(who):
                raise SponsorNotRegistered(f"Sponsor {who} is not a registered airline")
            if not self._registry.is_funded(who):
                raise SponsorNotFunded(f"Sponsor {who} has not provided funding")
            if self._registry.is_airline(cand):
                raise AlreadyRegistered(f"Airline {cand} is already registered")

            registered_count = self._registry.registered_count()
            if not self._resolver.requires_consensus(registered_count):
                result = self._commit(
                    lambda pending: self._register_bootstrap(who, cand, pending, now)
                )
            else:
                result = self._commit(
                    lambda pending: self._register_by_vote(
                        who, cand, registered_count, pending, now,
                    )
                )

        if result.registered:
            self._log.info(
                "airline_registered",
                airline=cand,
                sponsor=who,
                via=result.via.value if result.via else None,
                votes=result.votes,
            )
        else:
            self._log.info(
                "registration_vote_cast",
                candidate=cand,
                sponsor=who,
                votes=result.votes,
                votes_required=result.votes_required,
            )
        return result

    def _register_bootstrap(
        self,
        sponsor: str,
        candidate: str,
        pending: list[EventRecord],
        now: Optional[datetime],
    ) -> RegistrationResult:
        self._admit(candidate, RegistrationPath.BOOTSTRAP, sponsor, pending, now)
        return RegistrationResult(
            candidate=candidate,
            sponsor=sponsor,
            registered=True,
            via=RegistrationPath.BOOTSTRAP,
            votes=0,
            votes_required=0,
        )

    def _register_by_vote(
        self,
        sponsor: str,
        candidate: str,
        registered_count: int,
        pending: list[EventRecord],
        now: Optional[datetime],
    ) -> RegistrationResult:
        required = self._resolver.votes_required(registered_count)
        tally = self._registry.cast_vote(candidate, sponsor, now=now)
        pending.append(self._new_event(
            EventKind.REGISTRATION_VOTE_CAST,
            sponsor,
            {"candidate": candidate, "votes": tally, "votes_required": required},
            now,
        ))

        registered = tally >= required
        if registered:
            self._admit(candidate, RegistrationPath.CONSENSUS, sponsor, pending, now)
        return RegistrationResult(
            candidate=candidate,
            sponsor=sponsor,
            registered=registered,
            via=RegistrationPath.CONSENSUS if registered else None,
            votes=tally,
            votes_required=required,
        )

    def _admit(
        self,
        candidate: str,
        via: RegistrationPath,
        sponsor: str,
        pending: list[EventRecord],
        now: Optional[datetime],
    ) -> None:
        self._registry.register_direct(candidate, via, now=now)
        pending.append(self._new_event(
            EventKind.AIRLINE_REGISTERED,
            candidate,
            {"sponsor": sponsor, "via": via.value},
            now,
        ))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_airline(self, airline: str) -> bool:
        return self._registry.is_airline(airline)

    def is_funded(self, airline: str) -> bool:
        return self._registry.is_funded(airline)

    def can_underwrite(self, airline: str) -> bool:
        """Whether ``airline`` may underwrite policies: registered and funded."""
        return self._registry.is_airline(airline) and self._registry.is_funded(airline)

    def funded_amount(self, airline: str) -> int:
        return self._registry.funded_amount(airline)

    def registered_count(self) -> int:
        return self._registry.registered_count()

    def registered_airlines(self) -> list[str]:
        return self._registry.registered_airlines()

    def votes_required(self) -> int:
        """Votes the next candidate needs; 0 while still in bootstrap phase."""
        count = self._registry.registered_count()
        if not self._resolver.requires_consensus(count):
            return 0
        return self._resolver.votes_required(count)

    def pending_votes(self, candidate: str) -> int:
        record = self._registry.get_vote_record(candidate)
        return record.tally if record is not None else 0

    def pending_candidates(self) -> list[str]:
        return self._registry.pending_candidates()

    @property
    def owner(self) -> str:
        return self._guard.owner

    @property
    def version(self) -> int:
        return self._registry.version

    def status(self) -> dict[str, Any]:
        """Summary of governance state."""
        return {
            "operational": self._guard.is_operational(),
            "owner": self._guard.owner,
            "registered_airlines": self._registry.registered_count(),
            "pending_candidates": len(self._registry.pending_candidates()),
            "votes_required": self.votes_required(),
            "minimum_funding_wei": self._registry.minimum_funding,
            "version": self._registry.version,
        }

    def to_records(self) -> dict[str, Any]:
        """Serialise state for a hosting substrate to commit durably."""
        return {
            "owner": self._guard.owner,
            "operational": self._guard.is_operational(),
            "membership": self._registry.to_records(),
        }

    # ------------------------------------------------------------------
    # Commit machinery
    # ------------------------------------------------------------------

    def _commit(self, mutate: Callable[[list[EventRecord]], T]) -> T:
        """Apply ``mutate`` and its audit events as one unit.

        On any exception the registry is restored from a snapshot, the
        event counter is rewound and the exception propagates. Events are
        appended only after the mutation succeeded.
        """
        snapshot = self._registry.snapshot()
        counter = self._event_counter
        pending: list[EventRecord] = []
        try:
            result = mutate(pending)
            self._append_events(pending)
        except Exception:
            self._registry.restore(snapshot)
            self._event_counter = counter
            raise
        return result

    def _append_events(self, events: list[EventRecord]) -> None:
        if self._event_log is not None and events:
            self._event_log.append_all(events)

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _new_event(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        now: Optional[datetime],
    ) -> EventRecord:
        return EventRecord.create(
            event_id=self._next_event_id(),
            event_kind=kind,
            actor_id=actor_id,
            payload=payload,
            timestamp_utc=now or datetime.now(timezone.utc),
        )
