"""
Centralized logging configuration for the application.

Usage:
    from app.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Scored %s/%s#%d", owner, repo, pr_number)

Worker code that runs many jobs concurrently logs through a job-scoped
adapter so every line carries the job identity:

    log = get_job_logger(__name__, job_id="pr-acme-api-7-abc", pr="acme/api#7")
    log.info("Fetching PR details")
"""

import logging
import sys
from typing import Any, MutableMapping, Optional, Tuple

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "openai",
    "uvicorn.access",
    "sqlalchemy.engine",
)


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger with a standard format.

    Called once at process startup by both the API (lifespan) and the worker.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=_LOG_FORMAT,
        datefmt=_DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance, typically for ``__name__`` of the calling module."""
    return logging.getLogger(name)


class JobLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with ``[key=value ...]`` taken from ``extra``."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        context = " ".join(f"{k}={v}" for k, v in (self.extra or {}).items())
        return f"[{context}] {msg}", kwargs


def get_job_logger(name: str, **context: Any) -> JobLoggerAdapter:
    """
    Get a logger bound to a job context.

    Args:
        name: Logger name, typically __name__.
        **context: Key/value pairs rendered in front of every message.
    """
    return JobLoggerAdapter(logging.getLogger(name), context)
