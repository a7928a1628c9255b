"""Structured logging setup."""

from surety.observability.logging import configure_structlog, get_logger_for_component

__all__ = ["configure_structlog", "get_logger_for_component"]
