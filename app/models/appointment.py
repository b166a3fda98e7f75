# ===== app/models/appointment.py =====
from sqlalchemy import (
    Column, String, Text, DateTime, Uuid, Enum as SQLAEnum, CheckConstraint, Index
)
from sqlalchemy.sql import func
import uuid
import enum

from app.models.base import Base


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class RecurrencePattern(str, enum.Enum):
    """Fixed-interval series; there is no calendar-month pattern."""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    EVERY_4_WEEKS = "every-4-weeks"

    @property
    def interval_days(self) -> int:
        return {
            RecurrencePattern.WEEKLY: 7,
            RecurrencePattern.BIWEEKLY: 14,
            RecurrencePattern.EVERY_4_WEEKS: 28,
        }[self]


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("start_at < end_at", name="ck_appointments_time_order"),
        CheckConstraint(
            "(recurring_group_id IS NULL) = (recurrence_pattern IS NULL)",
            name="ck_appointments_series_pair"
        ),
        Index("idx_appointments_clinician_start", "clinician_id", "start_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References (opaque ids from the client/clinician directory)
    client_id = Column(String(64), nullable=False, index=True)
    clinician_id = Column(String(64), nullable=False)

    # UTC instants plus the zone the wall-clock time was booked in
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    time_zone = Column(String(64), nullable=False)

    # Appointment details
    appointment_type = Column(String(100), nullable=False, default="Therapy Session")
    notes = Column(Text, nullable=True)

    status = Column(
        SQLAEnum(
            AppointmentStatus,
            name="appointment_status",
            values_callable=lambda obj: [e.value for e in obj]
        ),
        nullable=False,
        default=AppointmentStatus.SCHEDULED
    )

    # Series membership, shared by every occurrence of one booking
    recurring_group_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    recurrence_pattern = Column(
        SQLAEnum(
            RecurrencePattern,
            name="recurrence_pattern",
            values_callable=lambda obj: [e.value for e in obj]
        ),
        nullable=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, clinician={self.clinician_id}, "
            f"start={self.start_at}, status={self.status})>"
        )
