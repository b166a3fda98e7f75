# ============================================================================
# FILE: app/api/dependencies.py
# Shared request dependencies
# ============================================================================
from typing import Optional

from fastapi import Path, Query

from app.core.exceptions import ValidationError
from app.services.timezone.timezone_service import TimeZoneService


def get_clinician_id(
        clinician_id: str = Path(..., min_length=1, max_length=64, description="Opaque clinician id")
) -> str:
    """Clinician ids come from the external directory and are never interpreted here."""
    clinician_id = clinician_id.strip()
    if not clinician_id:
        raise ValidationError("clinician_id is required", field="clinician_id")
    return clinician_id


def get_schedule_zone(
        time_zone: str = Query(..., description="IANA zone the clinician's schedule is kept in")
) -> str:
    """Zone used to turn local windows into instants. Unknown zones are an error."""
    return TimeZoneService.ensure_iana_zone(time_zone, strict=True)


def get_display_zone(
        display_time_zone: Optional[str] = Query(None, description="IANA zone to render times in"),
        time_zone: Optional[str] = Query(None)
) -> str:
    """
    Zone used only for rendering. Falls back to the schedule zone, then to the
    configured default; never to the server's own zone.
    """
    schedule_zone = TimeZoneService.ensure_iana_zone(time_zone)
    return TimeZoneService.ensure_iana_zone(display_time_zone, default=schedule_zone)
