# ============================================================================
# FILE: app/api/v1/dashboard/appointments.py
# Appointment endpoints - thin HTTP layer
# IMPORTANT: Specific routes MUST come before parameterized routes
# ============================================================================
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID

from app.config.database import get_db
from app.api.dependencies import get_clinician_id, get_display_zone
from app.schemas.appointment import (
    AppointmentCancelRequest,
    AppointmentCreateRequest,
    AppointmentRescheduleRequest,
)
from app.services.appointment.appointment_query_service import AppointmentQueryService
from app.services.appointment.appointment_service import AppointmentService

router = APIRouter(prefix="/clinicians/{clinician_id}/appointments", tags=["appointments"])


@router.post("", status_code=201)
async def create_appointment(
        body: AppointmentCreateRequest,
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    """
    Book an appointment, or a recurring series when recurrence_pattern is set.
    The whole series is created or nothing is.
    """
    appointments = AppointmentService.create_appointment(
        db=db,
        clinician_id=clinician_id,
        client_id=body.client_id,
        start_date=body.start_date,
        start_time=body.start_time,
        time_zone=body.time_zone,
        duration_minutes=body.duration_minutes,
        recurrence_pattern=body.recurrence_pattern,
        horizon_months=body.horizon_months,
        appointment_type=body.appointment_type,
        notes=body.notes
    )

    return {
        "recurring_group_id": str(appointments[0].recurring_group_id) if appointments[0].recurring_group_id else None,
        "total_created": len(appointments),
        "appointments": [AppointmentQueryService.serialize(appt) for appt in appointments]
    }


@router.get("")
async def list_appointments(
        start_date: Optional[date] = Query(None, description="Appointments on or after this local date"),
        end_date: Optional[date] = Query(None, description="Appointments on or before this local date"),
        status: Optional[str] = Query(None,
                                      description="Filter by status (scheduled, confirmed, cancelled, completed, no_show)"),
        client_id: Optional[str] = Query(None, description="Filter by client"),
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(50, ge=1, le=100, description="Number of records to return"),
        clinician_id: str = Depends(get_clinician_id),
        display_time_zone: str = Depends(get_display_zone),
        db: Session = Depends(get_db)
):
    return AppointmentQueryService.list_appointments(
        db=db,
        clinician_id=clinician_id,
        display_time_zone=display_time_zone,
        start_date=start_date,
        end_date=end_date,
        status=status,
        client_id=client_id,
        skip=skip,
        limit=limit
    )


@router.get("/series/{recurring_group_id}")
async def get_series(
        recurring_group_id: UUID = Path(..., description="The recurring series ID"),
        clinician_id: str = Depends(get_clinician_id),
        display_time_zone: str = Depends(get_display_zone),
        db: Session = Depends(get_db)
):
    return AppointmentQueryService.get_series(db, clinician_id, recurring_group_id, display_time_zone)


@router.get("/{appointment_id}")
async def get_appointment(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        clinician_id: str = Depends(get_clinician_id),
        display_time_zone: str = Depends(get_display_zone),
        db: Session = Depends(get_db)
):
    appointment = AppointmentService.get_appointment(db, clinician_id, appointment_id)
    return AppointmentQueryService.serialize(appointment, display_time_zone)


@router.post("/{appointment_id}/cancel")
async def cancel_appointment(
        body: AppointmentCancelRequest,
        appointment_id: UUID = Path(...),
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    """Cancel this appointment, or this and every later one in its series."""
    cancelled = AppointmentService.cancel_appointment(
        db, clinician_id, appointment_id, scope=body.scope, reason=body.reason
    )
    return {
        "scope": body.scope,
        "total_cancelled": len(cancelled),
        "appointments": [AppointmentQueryService.serialize(appt) for appt in cancelled]
    }


@router.post("/{appointment_id}/reschedule")
async def reschedule_appointment(
        body: AppointmentRescheduleRequest,
        appointment_id: UUID = Path(...),
        clinician_id: str = Depends(get_clinician_id),
        db: Session = Depends(get_db)
):
    moved = AppointmentService.reschedule_appointment(
        db,
        clinician_id,
        appointment_id,
        start_time=body.start_time,
        new_date=body.new_date,
        duration_minutes=body.duration_minutes,
        scope=body.scope
    )
    return {
        "scope": body.scope,
        "total_rescheduled": len(moved),
        "appointments": [AppointmentQueryService.serialize(appt) for appt in moved]
    }
