"""Flight Surety governance core.

Membership, funding and vote-gated admission of underwriting airlines,
behind an owner-controlled operational kill-switch.
"""

__version__ = "0.1.0"
