# app/utils/db_writes.py
"""Write helpers shared by the scheduling stores"""
import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError

logger = logging.getLogger(__name__)


def dialect_insert(db: Session, model):
    """INSERT construct with ON CONFLICT support for the session's backend"""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upserts are not supported on '{dialect}'")


@contextmanager
def conflict_guard(db: Session, message: str, field: Optional[str] = None):
    """
    Run a write block; a lost uniqueness/consistency check rolls the whole block
    back and surfaces as a retryable ConflictError.
    """
    try:
        yield
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Write rejected by the database: {message} ({e.orig})")
        raise ConflictError(message, field=field) from e
