# ============================================================================
# app/services/appointment/appointment_service.py
# ============================================================================
"""Service for booking, cancelling and rescheduling appointments"""
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple, Union
from uuid import UUID, uuid4
import logging

from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.appointment import Appointment, AppointmentStatus, RecurrencePattern
from app.services.appointment.recurrence_service import generate_occurrences, parse_pattern
from app.services.timezone.timezone_service import TimeZoneService
from app.utils.db_writes import conflict_guard

logger = logging.getLogger(__name__)

SCOPE_SINGLE = "single"
SCOPE_FOLLOWING = "following"

# Statuses an edit or cancellation can still act on
OPEN_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)


def _local_instants(
        local_date: date,
        start_time: time,
        duration_minutes: int,
        time_zone: str
) -> Tuple[datetime, datetime]:
    """
    UTC start/end of a booking made in local wall-clock time. Start and end are
    each converted from their own wall-clock value, never by offset arithmetic.
    """
    local_start = datetime.combine(local_date, start_time)
    local_end = local_start + timedelta(minutes=duration_minutes)

    start_at = TimeZoneService.to_utc(local_start.date(), local_start.time(), time_zone, field="start_time")
    end_at = TimeZoneService.to_utc(local_end.date(), local_end.time(), time_zone, field="end_time")

    if start_at >= end_at:
        raise ValidationError(
            f"Appointment on {local_date.isoformat()} must end after it starts", field="duration_minutes"
        )
    return start_at, end_at


def _validate_scope(scope: str) -> str:
    if scope not in (SCOPE_SINGLE, SCOPE_FOLLOWING):
        raise ValidationError(
            f"scope must be '{SCOPE_SINGLE}' or '{SCOPE_FOLLOWING}', got {scope!r}", field="scope"
        )
    return scope


def _validate_duration(duration_minutes: Optional[int]) -> int:
    if duration_minutes is None:
        return get_settings().DEFAULT_APPOINTMENT_DURATION_MINUTES
    if duration_minutes <= 0:
        raise ValidationError("duration_minutes must be positive", field="duration_minutes")
    return duration_minutes


class AppointmentService:
    """Handles appointment write operations"""

    @staticmethod
    def create_appointment(
            db: Session,
            clinician_id: str,
            client_id: str,
            start_date: date,
            start_time: time,
            time_zone: str,
            duration_minutes: Optional[int] = None,
            recurrence_pattern: Union[str, RecurrencePattern, None] = None,
            horizon_months: Optional[int] = None,
            appointment_type: str = "Therapy Session",
            notes: Optional[str] = None
    ) -> List[Appointment]:
        """
        Book a single appointment, or a whole series when recurrence_pattern is given.

        Every occurrence is converted to UTC before anything is written; one bad
        occurrence (e.g. a start time skipped by DST) fails the whole batch, and the
        series is committed as one transaction.
        """
        if not clinician_id:
            raise ValidationError("clinician_id is required", field="clinician_id")
        if not client_id:
            raise ValidationError("client_id is required", field="client_id")

        time_zone = TimeZoneService.ensure_iana_zone(time_zone, strict=True)
        duration_minutes = _validate_duration(duration_minutes)

        if recurrence_pattern is None:
            pattern = None
            dates = [start_date]
            group_id = None
        else:
            pattern = parse_pattern(recurrence_pattern)
            dates = generate_occurrences(start_date, pattern, horizon_months)
            group_id = uuid4()

        instants = [
            _local_instants(occurrence, start_time, duration_minutes, time_zone)
            for occurrence in dates
        ]

        appointments = [
            Appointment(
                id=uuid4(),
                client_id=client_id,
                clinician_id=clinician_id,
                start_at=start_at,
                end_at=end_at,
                time_zone=time_zone,
                appointment_type=appointment_type,
                notes=notes,
                status=AppointmentStatus.SCHEDULED,
                recurring_group_id=group_id,
                recurrence_pattern=pattern,
            )
            for start_at, end_at in instants
        ]

        with conflict_guard(db, f"Could not book appointments starting {start_date.isoformat()}",
                            field="start_date"):
            db.add_all(appointments)
            db.commit()

        for appointment in appointments:
            db.refresh(appointment)

        if group_id:
            logger.info(
                f"Created {pattern.value} series {group_id} with {len(appointments)} occurrence(s) "
                f"for clinician {clinician_id}, client {client_id}"
            )
        else:
            logger.info(f"Created appointment {appointments[0].id} for clinician {clinician_id}")

        return appointments

    @staticmethod
    def get_appointment(db: Session, clinician_id: str, appointment_id: UUID) -> Appointment:
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.clinician_id == clinician_id
        ).first()

        if not appointment:
            raise NotFoundError(f"Appointment {appointment_id} not found", field="appointment_id")
        return appointment

    @staticmethod
    def cancel_appointment(
            db: Session,
            clinician_id: str,
            appointment_id: UUID,
            scope: str = SCOPE_SINGLE,
            reason: Optional[str] = None
    ) -> List[Appointment]:
        """
        Cancel by status change; rows are kept for audit history.
        scope='following' also cancels every later open occurrence of the series.
        """
        _validate_scope(scope)
        appointment = AppointmentService.get_appointment(db, clinician_id, appointment_id)

        if appointment.status not in OPEN_STATUSES:
            raise ConflictError(
                f"Appointment {appointment_id} is already {appointment.status.value}", field="status"
            )

        targets = AppointmentService._scope_targets(db, appointment, scope)
        cancelled_at = datetime.now(timezone.utc)
        for target in targets:
            target.status = AppointmentStatus.CANCELLED
            target.cancelled_at = cancelled_at
            target.cancellation_reason = reason

        with conflict_guard(db, f"Could not cancel appointment {appointment_id}", field="appointment_id"):
            db.commit()

        for target in targets:
            db.refresh(target)

        logger.info(f"Cancelled {len(targets)} appointment(s) starting with {appointment_id} (scope={scope})")
        return targets

    @staticmethod
    def reschedule_appointment(
            db: Session,
            clinician_id: str,
            appointment_id: UUID,
            start_time: time,
            new_date: Optional[date] = None,
            duration_minutes: Optional[int] = None,
            scope: str = SCOPE_SINGLE
    ) -> List[Appointment]:
        """
        Move an appointment to a new local start time (and, for a single appointment,
        optionally a new date).

        scope='single' detaches the appointment from its series.
        scope='following' moves this and every later open occurrence; each one keeps
        its own local date and is converted to UTC independently.
        """
        _validate_scope(scope)
        if duration_minutes is not None:
            _validate_duration(duration_minutes)

        appointment = AppointmentService.get_appointment(db, clinician_id, appointment_id)
        if appointment.status not in OPEN_STATUSES:
            raise ConflictError(
                f"Appointment {appointment_id} is {appointment.status.value} and cannot be moved",
                field="status",
            )
        if scope == SCOPE_FOLLOWING and new_date is not None:
            raise ValidationError(
                "new_date can only be changed for a single appointment", field="new_date"
            )

        targets = AppointmentService._scope_targets(db, appointment, scope)

        planned = []
        for target in targets:
            local_date, _ = TimeZoneService.from_utc(target.start_at, target.time_zone)
            if scope == SCOPE_SINGLE and new_date is not None:
                local_date = new_date
            minutes = duration_minutes or int(
                (TimeZoneService.as_utc(target.end_at) - TimeZoneService.as_utc(target.start_at)).total_seconds() // 60
            )
            planned.append((target, _local_instants(local_date, start_time, minutes, target.time_zone)))

        for target, (start_at, end_at) in planned:
            target.start_at = start_at
            target.end_at = end_at
            if scope == SCOPE_SINGLE:
                target.recurring_group_id = None
                target.recurrence_pattern = None

        with conflict_guard(db, f"Could not reschedule appointment {appointment_id}", field="appointment_id"):
            db.commit()

        for target in targets:
            db.refresh(target)

        logger.info(
            f"Rescheduled {len(targets)} appointment(s) starting with {appointment_id} "
            f"to {start_time:%H:%M} (scope={scope})"
        )
        return targets

    @staticmethod
    def _scope_targets(db: Session, appointment: Appointment, scope: str) -> List[Appointment]:
        if scope == SCOPE_SINGLE or appointment.recurring_group_id is None:
            return [appointment]

        return db.query(Appointment).filter(
            Appointment.recurring_group_id == appointment.recurring_group_id,
            Appointment.clinician_id == appointment.clinician_id,
            Appointment.start_at >= appointment.start_at,
            Appointment.status.in_(OPEN_STATUSES)
        ).order_by(Appointment.start_at).all()
