"""Logging configuration for the fulfillment domain.

structlog on top of the standard library. The environment (``PROTEAN_ENV``,
falling back to ``ENVIRONMENT``) picks both the default level and the renderer:
key/value console output while developing, one JSON object per line in
production and staging. ``LOG_LEVEL`` overrides the level.
"""

import logging
import os
import sys
from contextlib import contextmanager

import structlog

# Default level per environment
LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

JSON_ENVIRONMENTS = {"production", "staging"}


def current_environment() -> str:
    return (os.getenv("PROTEAN_ENV") or os.getenv("ENVIRONMENT") or "development").lower()


def _renderer(env: str):
    if env in JSON_ENVIRONMENTS:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=False,
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
    )


def configure_logging(level: str | None = None) -> None:
    """Route structlog through a single stdout handler on the root logger."""
    env = current_environment()
    log_level = (level or os.getenv("LOG_LEVEL") or LEVELS.get(env, "INFO")).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    # Protean logs every unit of work at INFO
    logging.getLogger("protean").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(env),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def request_context(method: str, path: str):
    """Attach the HTTP method and path to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(method=method, path=path):
        yield
