"""
Scheduling error kinds and their HTTP mapping.

Services raise these; the API layer never has to translate them by hand.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    """Base class for every error the scheduling core raises"""

    status_code = 400
    kind = "scheduling_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "error": self.kind, "field": self.field}


class ValidationError(SchedulingError):
    """Missing field, start >= end, unknown recurrence pattern. Nothing was written."""

    status_code = 422
    kind = "validation_error"


class TimeZoneError(SchedulingError):
    kind = "timezone_error"


class InvalidTimeZone(TimeZoneError):
    """Zone identifier is not a recognized IANA zone"""

    kind = "invalid_time_zone"


class InvalidLocalTime(TimeZoneError):
    """Wall-clock time does not exist in the zone (skipped by a DST jump)"""

    kind = "invalid_local_time"


class ConflictError(SchedulingError):
    """A write lost a uniqueness/consistency check. Safe to retry."""

    status_code = 409
    kind = "conflict"


class NotFoundError(SchedulingError):
    status_code = 404
    kind = "not_found"


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the scheduling error -> JSON response mapping to the app"""

    @app.exception_handler(SchedulingError)
    async def scheduling_error_handler(request: Request, exc: SchedulingError):
        logger.warning(
            f"{exc.kind} on {request.method} {request.url.path}: {exc.message}"
            + (f" (field={exc.field})" if exc.field else "")
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        """Malformed requests get the same envelope as service-level validation errors"""
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = [part for part in first.get("loc", ()) if isinstance(part, str)]
        field = loc[-1] if loc and loc[-1] not in ("body", "query", "path") else None
        message = first.get("msg", "Invalid request")

        logger.warning(
            f"validation_error on {request.method} {request.url.path}: {message}"
            + (f" (field={field})" if field else "")
        )
        return JSONResponse(
            status_code=ValidationError.status_code,
            content={"detail": message, "error": ValidationError.kind, "field": field},
        )
