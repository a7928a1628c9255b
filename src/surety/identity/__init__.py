"""Participant identity handling."""

from surety.identity.addresses import normalize_address

__all__ = ["normalize_address"]
