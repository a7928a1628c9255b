"""Account address normalisation.

Participants are keyed by 20-byte account addresses. All entry points
normalise to EIP-55 checksum form so that the same account supplied in
lower case, upper case or checksum case maps to a single participant.
"""

from __future__ import annotations

from web3 import Web3

from surety.errors import InvalidAddress


def normalize_address(address: str) -> str:
    """Return the checksum form of ``address``.

    Raises:
        InvalidAddress: If ``address`` is not a 0x-prefixed 20-byte hex
            address (or is a mixed-case address with a bad checksum).
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidAddress(f"Not a valid account address: {address!r}")
    return Web3.to_checksum_address(address)
