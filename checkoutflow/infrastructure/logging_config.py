"""structlog configuration."""

import logging
import sys

import structlog

from checkoutflow.infrastructure.config import Settings, settings


def configure_logging(config: Settings | None = None) -> None:
    """Route structlog through stdlib logging with JSON or console output.

    Args:
        config: Settings to read the level and renderer from.
    """
    config = config or settings
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)

    renderer = (
        structlog.processors.JSONRenderer()
        if config.log_json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
