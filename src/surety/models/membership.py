"""Membership data models: participants, vote records, operational state.

Funding amounts are integer wei. No floats in finance.

Invariants enforced by these models:
- funded_amount never decreases (credit() rejects non-positive amounts).
- is_funded is derived from funded_amount, never stored separately.
- A vote record holds each voter at most once; the tally is derived.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


class RegistrationPath(str, enum.Enum):
    """How a participant became a registered airline."""
    GENESIS = "genesis"        # Designated first airline at initialisation
    BOOTSTRAP = "bootstrap"    # Registered by a sponsor without a vote
    CONSENSUS = "consensus"    # Registered when the vote tally crossed the threshold


@dataclass
class Participant:
    """An airline identity known to the registry.

    Created implicitly on first funding deposit or first committed
    registration attempt. Never deleted.
    """
    address: str
    minimum_funding: int
    is_registered: bool = False
    funded_amount: int = 0
    registered_via: Optional[RegistrationPath] = None
    registered_utc: Optional[datetime] = None
    registration_seq: Optional[int] = None  # 1 for the genesis airline

    @property
    def is_funded(self) -> bool:
        return self.funded_amount >= self.minimum_funding

    def credit(self, amount: int) -> None:
        if amount <= 0:
            raise ValueError(f"Funding credit must be positive, got {amount}")
        self.funded_amount += amount


@dataclass
class VoteRecord:
    """Votes cast for a pending candidate, in arrival order."""
    candidate: str
    voters: list[str] = field(default_factory=list)
    opened_utc: Optional[datetime] = None

    @property
    def tally(self) -> int:
        return len(self.voters)

    def has_voted(self, voter: str) -> bool:
        return voter in self.voters


@dataclass
class OperationalState:
    """Process-wide operational flag and the fixed owner identity."""
    owner: str
    operational: bool = True


@dataclass
class MembershipState:
    """The versioned membership aggregate.

    version is bumped on every registry write, so two equal versions
    always describe the same membership.
    """
    participants: dict[str, Participant] = field(default_factory=dict)
    votes: dict[str, VoteRecord] = field(default_factory=dict)
    version: int = 0

    def to_record(self) -> dict[str, Any]:
        """Serialise the aggregate for a hosting substrate."""
        return {
            "version": self.version,
            "participants": [
                {
                    "address": p.address,
                    "is_registered": p.is_registered,
                    "funded_amount": str(p.funded_amount),
                    "registered_via": (
                        p.registered_via.value if p.registered_via else None
                    ),
                    "registered_utc": (
                        p.registered_utc.isoformat() if p.registered_utc else None
                    ),
                    "registration_seq": p.registration_seq,
                }
                for p in self.participants.values()
            ],
            "votes": [
                {
                    "candidate": v.candidate,
                    "voters": list(v.voters),
                    "opened_utc": v.opened_utc.isoformat() if v.opened_utc else None,
                }
                for v in self.votes.values()
            ],
        }

    @classmethod
    def from_record(
        cls, record: dict[str, Any], minimum_funding: int,
    ) -> MembershipState:
        """Restore an aggregate serialised by to_record()."""
        state = cls(version=record.get("version", 0))
        for pd in record.get("participants", []):
            state.participants[pd["address"]] = Participant(
                address=pd["address"],
                minimum_funding=minimum_funding,
                is_registered=pd["is_registered"],
                funded_amount=int(pd["funded_amount"]),
                registered_via=(
                    RegistrationPath(pd["registered_via"])
                    if pd.get("registered_via") else None
                ),
                registered_utc=(
                    datetime.fromisoformat(pd["registered_utc"])
                    if pd.get("registered_utc") else None
                ),
                registration_seq=pd.get("registration_seq"),
            )
        for vd in record.get("votes", []):
            state.votes[vd["candidate"]] = VoteRecord(
                candidate=vd["candidate"],
                voters=list(vd["voters"]),
                opened_utc=(
                    datetime.fromisoformat(vd["opened_utc"])
                    if vd.get("opened_utc") else None
                ),
            )
        return state
