"""Tests for structured logging configuration."""

import json
from pathlib import Path

import pytest
import structlog
from web3 import Web3

from surety.observability.logging import configure_structlog, get_logger_for_component
from surety.policy.resolver import PolicyResolver
from surety.service import GovernanceGateway

CONFIG_DIR = Path(__file__).resolve().parents[1] / "src" / "surety" / "config"


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


def test_production_renders_json(capsys: pytest.CaptureFixture[str]) -> None:
    configure_structlog(environment="production")
    structlog.get_logger().info("airline_registered", airline="0xA1")
    line = capsys.readouterr().out.strip().splitlines()[-1]
    data = json.loads(line)
    assert data["event"] == "airline_registered"
    assert data["airline"] == "0xA1"
    assert data["level"] == "info"
    assert "timestamp" in data


def test_level_filtering(
    capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    configure_structlog(environment="production")
    structlog.get_logger().info("suppressed")
    assert "suppressed" not in capsys.readouterr().out


def test_component_is_bound(capsys: pytest.CaptureFixture[str]) -> None:
    configure_structlog(environment="production")
    get_logger_for_component("registry").info("vote_cast")
    data = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert data["component"] == "registry"


def test_gateway_logs_follow_later_configuration(
    capsys: pytest.CaptureFixture[str],
) -> None:
    configure_structlog(environment="production")
    resolver = PolicyResolver.from_config_dir(CONFIG_DIR)
    owner = Web3.to_checksum_address(f"0x{0x1000:040x}")
    first = Web3.to_checksum_address(f"0x{0x1001:040x}")
    gateway = GovernanceGateway(resolver, owner=owner, first_airline=first)
    gateway.deposit_funding(first, Web3.to_wei(10, "ether"))

    data = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert data["event"] == "funding_deposited"
    assert data["component"] == "governance_gateway"
    assert data["became_funded"] is True
