# ===== app/models/availability.py =====
"""
Clinician availability storage.

availability_rules      - one weekly recurring block per clinician/day/time-range
availability_exceptions - per-date override or cancellation of one rule occurrence,
                          or a standalone one-off slot (original_rule_id IS NULL)
"""
from sqlalchemy import (
    Column, String, Integer, Boolean, Time, Date, DateTime, ForeignKey, Uuid,
    Enum as SQLAEnum, CheckConstraint, UniqueConstraint, Index, text
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
import enum

from app.models.base import Base


class RuleStatus(str, enum.Enum):
    """Lifecycle of a weekly rule. Rules are never destroyed while history points at them."""
    ACTIVE = "active"
    DEACTIVATED = "deactivated"


class AvailabilityRule(Base):
    """Clinician-defined weekly working hours"""
    __tablename__ = "availability_rules"
    __table_args__ = (
        UniqueConstraint(
            "clinician_id", "day_of_week", "start_time", "end_time",
            name="uq_availability_rules_shape"
        ),
        CheckConstraint("start_time < end_time", name="ck_availability_rules_time_order"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_rules_day"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    clinician_id = Column(String(64), nullable=False, index=True)

    day_of_week = Column(Integer, nullable=False)  # 0=Monday, 6=Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    status = Column(
        SQLAEnum(
            RuleStatus,
            name="availability_rule_status",
            values_callable=lambda obj: [e.value for e in obj]
        ),
        nullable=False,
        default=RuleStatus.ACTIVE
    )

    exceptions = relationship("AvailabilityException", back_populates="rule")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deactivated_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == RuleStatus.ACTIVE

    def __repr__(self):
        return (
            f"<AvailabilityRule(id={self.id}, clinician={self.clinician_id}, "
            f"day={self.day_of_week}, {self.start_time}-{self.end_time}, {self.status})>"
        )


class AvailabilityException(Base):
    """
    Date-specific change to availability.

    original_rule_id set  -> overrides (new times) or cancels (is_deleted) one occurrence
    original_rule_id NULL -> standalone one-off slot with no backing rule
    """
    __tablename__ = "availability_exceptions"
    __table_args__ = (
        # One row per occurrence; NULL rule ids never collide here
        UniqueConstraint(
            "clinician_id", "specific_date", "original_rule_id",
            name="uq_availability_exceptions_override"
        ),
        # One standalone row per clinician/date
        Index(
            "uq_availability_exceptions_standalone",
            "clinician_id", "specific_date",
            unique=True,
            postgresql_where=text("original_rule_id IS NULL"),
            sqlite_where=text("original_rule_id IS NULL"),
        ),
        CheckConstraint(
            "is_deleted OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)",
            name="ck_availability_exceptions_window"
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    clinician_id = Column(String(64), nullable=False, index=True)

    specific_date = Column(Date, nullable=False)
    original_rule_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("availability_rules.id", ondelete="RESTRICT"),
        nullable=True
    )

    start_time = Column(Time, nullable=True)  # NULL when cancelled
    end_time = Column(Time, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    rule = relationship("AvailabilityRule", back_populates="exceptions")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return (
            f"<AvailabilityException(id={self.id}, clinician={self.clinician_id}, "
            f"date={self.specific_date}, rule={self.original_rule_id}, deleted={self.is_deleted})>"
        )
