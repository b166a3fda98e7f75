# ============================================================================
# FILE 1: app/services/appointment/appointment_query_service.py
# Pure read logic - no FastAPI dependencies, fully testable
# ============================================================================
from sqlalchemy.orm import Session
from datetime import date, timedelta
from typing import Optional, Dict, Any
from uuid import UUID

from app.core.exceptions import NotFoundError, ValidationError
from app.models.appointment import Appointment, AppointmentStatus
from app.services.timezone.timezone_service import TimeZoneService


class AppointmentQueryService:
    """Read side for appointments, rendered in local wall-clock time."""

    @staticmethod
    def list_appointments(
            db: Session,
            clinician_id: str,
            display_time_zone: str,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[str] = None,
            client_id: Optional[str] = None,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """
        Paginated appointments. start_date/end_date are local dates in
        display_time_zone (end_date inclusive).
        """
        query = db.query(Appointment).filter(Appointment.clinician_id == clinician_id)

        if start_date and end_date and end_date < start_date:
            raise ValidationError("end_date must not be before start_date", field="end_date")
        if start_date:
            query = query.filter(
                Appointment.start_at >= TimeZoneService.day_start_utc(start_date, display_time_zone)
            )
        if end_date:
            query = query.filter(
                Appointment.start_at < TimeZoneService.day_start_utc(end_date + timedelta(days=1), display_time_zone)
            )
        if status:
            try:
                query = query.filter(Appointment.status == AppointmentStatus(status))
            except ValueError:
                raise ValidationError(f"Unknown appointment status {status!r}", field="status")
        if client_id:
            query = query.filter(Appointment.client_id == client_id)

        query = query.order_by(Appointment.start_at.asc())
        total = query.count()
        appointments = query.offset(skip).limit(limit).all()

        return {
            "clinician_id": clinician_id,
            "total_appointments": total,
            "page": {
                "skip": skip,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0
            },
            "filters": {
                "start_date": start_date.isoformat() if start_date else None,
                "end_date": end_date.isoformat() if end_date else None,
                "status": status,
                "client_id": client_id,
                "display_time_zone": display_time_zone
            },
            "appointments": [
                AppointmentQueryService.serialize(appt, display_time_zone) for appt in appointments
            ]
        }

    @staticmethod
    def get_series(
            db: Session,
            clinician_id: str,
            recurring_group_id: UUID,
            display_time_zone: Optional[str] = None
    ) -> Dict[str, Any]:
        """All occurrences of one recurring series, cancelled ones included."""
        appointments = db.query(Appointment).filter(
            Appointment.clinician_id == clinician_id,
            Appointment.recurring_group_id == recurring_group_id
        ).order_by(Appointment.start_at.asc()).all()

        if not appointments:
            raise NotFoundError(f"Recurring series {recurring_group_id} not found", field="recurring_group_id")

        return {
            "recurring_group_id": str(recurring_group_id),
            "recurrence_pattern": appointments[0].recurrence_pattern.value,
            "total_occurrences": len(appointments),
            "open_occurrences": sum(
                1 for appt in appointments
                if appt.status in (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)
            ),
            "appointments": [
                AppointmentQueryService.serialize(appt, display_time_zone) for appt in appointments
            ]
        }

    @staticmethod
    def serialize(appointment: Appointment, display_time_zone: Optional[str] = None) -> Dict[str, Any]:
        """Convert Appointment model to dictionary."""
        start_at = TimeZoneService.as_utc(appointment.start_at)
        end_at = TimeZoneService.as_utc(appointment.end_at)

        local_date, local_start = TimeZoneService.from_utc(start_at, appointment.time_zone)
        _, local_end = TimeZoneService.from_utc(end_at, appointment.time_zone)

        data = {
            "id": str(appointment.id),
            "client_id": appointment.client_id,
            "clinician_id": appointment.clinician_id,
            "start_at": start_at.isoformat(),
            "end_at": end_at.isoformat(),
            "time_zone": appointment.time_zone,
            "local": {
                "date": local_date.isoformat(),
                "start": local_start.strftime("%H:%M"),
                "end": local_end.strftime("%H:%M"),
            },
            "appointment_type": appointment.appointment_type,
            "status": appointment.status.value,
            "notes": appointment.notes,
            "recurring_group_id": str(appointment.recurring_group_id) if appointment.recurring_group_id else None,
            "recurrence_pattern": appointment.recurrence_pattern.value if appointment.recurrence_pattern else None,
            "created_at": appointment.created_at.isoformat() if appointment.created_at else None,
            "cancelled_at": appointment.cancelled_at.isoformat() if appointment.cancelled_at else None,
            "cancellation_reason": appointment.cancellation_reason
        }

        if display_time_zone:
            display_date, display_start = TimeZoneService.from_utc(start_at, display_time_zone)
            _, display_end = TimeZoneService.from_utc(end_at, display_time_zone)
            data["display"] = {
                "time_zone": display_time_zone,
                "date": display_date.isoformat(),
                "start": display_start.strftime("%H:%M"),
                "end": display_end.strftime("%H:%M"),
            }

        return data
