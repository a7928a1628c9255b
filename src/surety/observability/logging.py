"""Structured logging configuration with structlog.

Production output is one JSON object per line; development output is a
coloured console rendering. The level comes from LOG_LEVEL.

Usage:
    from surety.observability import configure_structlog

    configure_structlog(environment="production")

    import structlog
    log = structlog.get_logger()
    log.info("airline_registered", airline="0x...")
"""

import logging
import os

import structlog
from structlog.typing import Processor

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def _get_log_level() -> int:
    level_name = os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    return getattr(logging, level_name, logging.INFO)


def configure_structlog(environment: str = "production") -> None:
    """Configure structlog once at process start.

    Args:
        environment: 'production' for JSON output, anything else for
            console output.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if environment == "production":
        final_processor: Processor = structlog.processors.JSONRenderer()
    else:
        final_processor = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [final_processor],
        wrapper_class=structlog.make_filtering_bound_logger(_get_log_level()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger_for_component(component: str) -> structlog.typing.FilteringBoundLogger:
    """Return a logger with the governance component name bound."""
    return structlog.get_logger().bind(component=component)
