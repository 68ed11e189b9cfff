"""Logging setup: stdlib logging as sink, structlog for structured events."""

import logging

import structlog


def configure_logging(level: str = "INFO") -> None:
    """
    Configure stdlib logging and structlog.

    Args:
        level: Level name (DEBUG, INFO, WARNING...); unknown names mean INFO
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )
