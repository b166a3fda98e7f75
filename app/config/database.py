"""Database configuration and connection setup"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from app.config.settings import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


def _build_engine(url: str):
    if url.startswith("sqlite"):
        # Local runs and tests: one shared connection so in-memory databases persist
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=False,
    )


# Create database engine with connection pooling
engine = _build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all scheduling tables that do not exist yet"""
    from app.models import Base

    logger.info("Creating scheduling tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Scheduling tables created")


if __name__ == "__main__":
    create_tables()
