"""Structured logging setup shared by the web app and the scripts."""
import logging
import sys

import structlog

from docintel import config


def configure_logging(level: str = None, json: bool = None) -> None:
    """Configure stdlib logging and structlog.

    Args:
        level: Log level name (default from config)
        json: Render JSON lines instead of the console renderer (default from config)
    """
    level = (level or config.LOG_LEVEL).upper()
    json = config.LOG_JSON if json is None else json

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level, logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
