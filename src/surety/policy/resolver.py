"""Policy resolver: loads governance parameters from the config directory.

All tunable numbers live in governance_params.json, shipped in
surety/config/ and overridable with SURETY_CONFIG_DIR. Nothing in the
engines hard-codes a threshold; they ask the resolver.

Parameters:
- minimum_funding_ether: deposit (in ether) at which an airline counts as
  funded. Held internally in wei.
- bootstrap_threshold: registered-airline count below which a sponsor
  registers a candidate without a vote.
- consensus_divisor: once past bootstrap, a candidate needs
  ceil(registered / consensus_divisor) votes.
"""

from __future__ import annotations

import json
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from web3 import Web3

PARAMS_FILE = "governance_params.json"
CONFIG_DIR_ENV = "SURETY_CONFIG_DIR"
DEFAULT_CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"

DEFAULT_MINIMUM_FUNDING_ETHER = "10"
DEFAULT_BOOTSTRAP_THRESHOLD = 4
DEFAULT_CONSENSUS_DIVISOR = 2


class PolicyResolver:
    """Read-only view over the governance parameters.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        resolver.minimum_funding_wei()
    """

    def __init__(self, params: dict[str, Any]) -> None:
        self._params = params
        membership = params.get("membership", {})

        raw_funding = str(
            membership.get("minimum_funding_ether", DEFAULT_MINIMUM_FUNDING_ETHER)
        )
        try:
            funding_ether = Decimal(raw_funding)
        except InvalidOperation as e:
            raise ValueError(
                f"minimum_funding_ether is not a number: {raw_funding!r}"
            ) from e
        if funding_ether <= 0:
            raise ValueError(
                f"minimum_funding_ether must be positive, got {raw_funding}"
            )
        self._minimum_funding_wei = int(Web3.to_wei(funding_ether, "ether"))

        self._bootstrap_threshold = int(
            membership.get("bootstrap_threshold", DEFAULT_BOOTSTRAP_THRESHOLD)
        )
        if self._bootstrap_threshold < 1:
            raise ValueError(
                f"bootstrap_threshold must be >= 1, got {self._bootstrap_threshold}"
            )

        self._consensus_divisor = int(
            membership.get("consensus_divisor", DEFAULT_CONSENSUS_DIVISOR)
        )
        if self._consensus_divisor < 1:
            raise ValueError(
                f"consensus_divisor must be >= 1, got {self._consensus_divisor}"
            )

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load parameters from ``config_dir/governance_params.json``."""
        path = Path(config_dir) / PARAMS_FILE
        if not path.exists():
            raise ValueError(f"Governance parameters not found: {path}")
        params = json.loads(path.read_text(encoding="utf-8"))
        return cls(params)

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> PolicyResolver:
        """Load parameters from the directory named by SURETY_CONFIG_DIR.

        Values in ``env_file`` (or a .env found from the working directory)
        are loaded first; variables already set in the environment win.
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()
        config_dir = os.getenv(CONFIG_DIR_ENV)
        return cls.from_config_dir(
            Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
        )

    def minimum_funding_wei(self) -> int:
        return self._minimum_funding_wei

    def bootstrap_threshold(self) -> int:
        return self._bootstrap_threshold

    def consensus_divisor(self) -> int:
        return self._consensus_divisor

    def votes_required(self, registered_count: int) -> int:
        """Votes needed to admit a candidate when ``registered_count`` airlines exist.

        Ceiling division: 4 registered need 2 votes, 5 registered need 3.
        """
        return -(-registered_count // self._consensus_divisor)

    def requires_consensus(self, registered_count: int) -> bool:
        return registered_count >= self._bootstrap_threshold
