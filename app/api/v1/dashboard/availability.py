# ============================================================================
# FILE: app/api/v1/dashboard/availability.py
# Availability endpoints - thin HTTP layer
# IMPORTANT: Specific routes MUST come before parameterized routes
# ============================================================================
from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.orm import Session

from app.api.dependencies import get_clinician_id, get_display_zone, get_schedule_zone
from app.config.database import get_db
from app.schemas.availability import (
    ExceptionResponse,
    OccurrenceOverrideRequest,
    ResolvedDayResponse,
    ResolvedRangeResponse,
    RuleResponse,
    RuleUpdateRequest,
    RuleUpsertRequest,
    StandaloneSlotRequest,
)
from app.services.availability.availability_service import AvailabilityService
from app.services.availability.exception_service import AvailabilityExceptionService
from app.services.availability.rule_service import AvailabilityRuleService

router = APIRouter(prefix="/clinicians/{clinician_id}/availability", tags=["availability"])


# ========== RESOLUTION (read-only) ==========

@router.get("", response_model=ResolvedRangeResponse)
async def get_effective_availability(
        start_date: date = Query(..., description="First local date"),
        end_date: date = Query(..., description="Last local date (inclusive)"),
        clinician_id: str = Depends(get_clinician_id),
        time_zone: str = Depends(get_schedule_zone),
        display_time_zone: str = Depends(get_display_zone),
        db: Session = Depends(get_db)
):
    """
    Effective windows for every date in the range; dates without availability are omitted.
    Dates that cannot be rendered (window edge inside a DST gap) are listed under errors.
    """
    resolved = AvailabilityService.resolve_range(db, clinician_id, start_date, end_date, time_zone)
    days, errors = AvailabilityService.describe_range(resolved, time_zone, display_time_zone)

    return {
        "clinician_id": clinician_id,
        "start_date": start_date,
        "end_date": end_date,
        "time_zone": time_zone,
        "display_time_zone": display_time_zone,
        "days": days,
        "errors": errors,
    }


@router.get("/days/{day}", response_model=ResolvedDayResponse)
async def get_day_availability(
        day: date = Path(..., description="Local date, YYYY-MM-DD"),
        clinician_id: str = Depends(get_clinician_id),
        time_zone: str = Depends(get_schedule_zone),
        display_time_zone: str = Depends(get_display_zone),
        db: Session = Depends(get_db)
):
    """Effective windows for a single date, exceptions applied over the weekly rules."""
    windows = AvailabilityService.resolve_day(db, clinician_id, day, time_zone)

    return {
        "clinician_id": clinician_id,
        "date": day,
        "time_zone": time_zone,
        "display_time_zone": display_time_zone,
        "windows": AvailabilityService.describe_windows(day, windows, time_zone, display_time_zone),
    }


# ========== EXCEPTIONS & STANDALONE SLOTS ==========

@router.get("/exceptions", response_model=List[ExceptionResponse])
async def list_exceptions(
        start_date: date = Query(...),
        end_date: date = Query(...),
        include_deleted: bool = Query(True),
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    return AvailabilityExceptionService.list_exceptions(
        db, clinician_id, start_date, end_date, include_deleted=include_deleted
    )


@router.put("/standalone/{day}", response_model=ExceptionResponse)
async def put_standalone_slot(
        body: StandaloneSlotRequest,
        day: date = Path(...),
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    """Create or replace the one-off slot on this date."""
    return AvailabilityExceptionService.upsert_standalone(
        db, clinician_id, day, body.start_time, body.end_time
    )


@router.delete("/standalone/{day}")
async def delete_standalone_slot(
        day: date = Path(...),
        hard: bool = Query(False, description="Remove the row instead of marking it cancelled"),
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    if hard:
        AvailabilityExceptionService.delete_standalone(db, clinician_id, day)
        return Response(status_code=204)

    row = AvailabilityExceptionService.cancel_standalone(db, clinician_id, day)
    return ExceptionResponse.model_validate(row)


# ========== WEEKLY RULES ==========

@router.get("/rules", response_model=List[RuleResponse])
async def list_rules(
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    return AvailabilityRuleService.list_active_rules(db, clinician_id)


@router.put("/rules", response_model=RuleResponse)
async def upsert_rule(
        body: RuleUpsertRequest,
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    """Create a weekly block. Submitting an existing shape returns the existing rule."""
    return AvailabilityRuleService.upsert_rule(
        db, clinician_id, body.day_of_week, body.start_time, body.end_time
    )


@router.patch("/rules/{rule_id}", response_model=RuleResponse)
async def update_rule(
        body: RuleUpdateRequest,
        rule_id: UUID = Path(...),
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    """Edit the whole series."""
    return AvailabilityRuleService.update_rule(
        db, clinician_id, rule_id, body.start_time, body.end_time, day_of_week=body.day_of_week
    )


@router.post("/rules/{rule_id}/deactivate", response_model=RuleResponse)
async def deactivate_rule(
        rule_id: UUID = Path(...),
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    return AvailabilityRuleService.deactivate_rule(db, clinician_id, rule_id)


@router.delete("/rules/{rule_id}", status_code=204)
async def delete_rule(
        rule_id: UUID = Path(...),
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    """Only rules no exception has ever referenced can be removed."""
    AvailabilityRuleService.delete_rule(db, clinician_id, rule_id)
    return Response(status_code=204)


@router.put("/rules/{rule_id}/occurrences/{day}", response_model=ExceptionResponse)
async def override_occurrence(
        body: OccurrenceOverrideRequest,
        rule_id: UUID = Path(...),
        day: date = Path(...),
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    """Replace one date's occurrence with new times (also restores a cancelled date)."""
    return AvailabilityExceptionService.override_occurrence(
        db, clinician_id, rule_id, day, body.start_time, body.end_time
    )


@router.delete("/rules/{rule_id}/occurrences/{day}", response_model=ExceptionResponse)
async def cancel_occurrence(
        rule_id: UUID = Path(...),
        day: date = Path(...),
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    """Cancel one date's occurrence; the weekly rule is untouched."""
    return AvailabilityExceptionService.cancel_occurrence(db, clinician_id, rule_id, day)
