"""
Structured logging setup.

Call configure_logging() once at startup; modules grab a logger with
get_logger(__name__) and log events as key/value pairs.
"""

import logging
import structlog


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog with ISO timestamps and JSON output."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None):
    """Get a bound logger; the module name is attached as `logger_name`."""
    if name:
        return structlog.get_logger(logger_name=name)
    return structlog.get_logger()
