"""Policy configuration."""

from surety.policy.resolver import PolicyResolver

__all__ = ["PolicyResolver"]
