"""Health checks and monitoring endpoints"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config.database import get_db

logger = logging.getLogger(__name__)

health_router = APIRouter()


@health_router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "clinician-scheduling"}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Detailed health check with the database dependency"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "overall": "unknown"
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = f"unhealthy: {str(e)}"

    if all(status == "healthy" for status in checks.values() if status != "unknown"):
        checks["overall"] = "healthy"
    else:
        checks["overall"] = "degraded"

    return checks
