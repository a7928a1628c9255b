"""Governance engines: operational guard and membership registry."""

from surety.governance.access_guard import AccessGuard
from surety.governance.membership_registry import MembershipRegistry

__all__ = ["AccessGuard", "MembershipRegistry"]
