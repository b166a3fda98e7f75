# app/utils/my_logging.py
"""Logging configuration"""
import logging
import sys
from contextvars import ContextVar

from app.config.settings import get_settings

# Set per request by the correlation id middleware
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

NOISY_LOGGERS = [
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "alembic",
    "httpx",
    "uvicorn.access",
]


class CorrelationIdFilter(logging.Filter):
    """Stamp every record with the correlation id of the current request"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


def setup_logging(verbose=True):
    """Configure application logging"""
    settings = get_settings()

    if verbose:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    else:
        level = logging.WARNING

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s",
        handlers=[handler],
        force=True,
    )

    if not verbose:
        for name in NOISY_LOGGERS:
            logger = logging.getLogger(name)
            logger.setLevel(logging.ERROR)
            logger.propagate = False
