"""Core data models for the governance core."""

from surety.models.membership import (
    MembershipState,
    OperationalState,
    Participant,
    RegistrationPath,
    VoteRecord,
)

__all__ = [
    "MembershipState",
    "OperationalState",
    "Participant",
    "RegistrationPath",
    "VoteRecord",
]
