# app/models/__init__.py
from .base import Base
from .availability import AvailabilityRule, AvailabilityException, RuleStatus
from .appointment import Appointment, AppointmentStatus, RecurrencePattern

__all__ = [
    "Base",
    "AvailabilityRule",
    "AvailabilityException",
    "RuleStatus",
    "Appointment",
    "AppointmentStatus",
    "RecurrencePattern",
]
