"""Governance error taxonomy.

Every failure is a policy violation, not an infrastructure fault. Errors
are terminal for the call that raised them: the call is rejected and
nothing it attempted is committed. There is no retry path.
"""

from __future__ import annotations


class GovernanceError(Exception):
    """Base class for all governance-core rejections."""


class Unauthorized(GovernanceError):
    """Raised when the caller lacks the role the operation requires."""


class ContractPaused(GovernanceError):
    """Raised by any mutating operation while the operational flag is off."""


# Registry-level name for the same halt condition.
OperationalHalt = ContractPaused


class AlreadyRegistered(GovernanceError):
    """Raised when registering or voting for an already-registered airline."""


class SponsorNotRegistered(GovernanceError):
    """Raised when the sponsor of a registration is not a registered airline."""


class SponsorNotFunded(GovernanceError):
    """Raised when the sponsor has not reached the minimum funding amount."""


class DuplicateVote(GovernanceError):
    """Raised when a voter votes a second time for the same candidate."""


class InvalidAddress(GovernanceError, ValueError):
    """Raised when an identity is not a well-formed account address."""


class InvalidAmount(GovernanceError, ValueError):
    """Raised when a funding deposit is not a positive wei amount."""
