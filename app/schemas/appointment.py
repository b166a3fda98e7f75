"""
Pydantic schemas for appointment booking and series management
"""
from datetime import date, time
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.appointment import RecurrencePattern


class AppointmentCreateRequest(BaseModel):
    """
    Booking request from the scheduling UI. Date and time are local wall clock in
    time_zone; leave recurrence_pattern empty for a one-off appointment.
    """
    client_id: str = Field(..., min_length=1, max_length=64)
    start_date: date
    start_time: time = Field(..., description="Local start time, HH:MM")
    time_zone: str = Field(..., min_length=1, description="IANA zone the time is expressed in")
    duration_minutes: Optional[int] = Field(None, gt=0, le=24 * 60)
    recurrence_pattern: Optional[RecurrencePattern] = None
    horizon_months: Optional[int] = Field(None, ge=1, le=24)
    appointment_type: str = Field("Therapy Session", min_length=1, max_length=100)
    notes: Optional[str] = None

    @field_validator("start_time")
    @classmethod
    def minute_precision(cls, v: time) -> time:
        if v.second or v.microsecond:
            raise ValueError("start_time has minute precision (HH:MM)")
        return v.replace(tzinfo=None)


class AppointmentCancelRequest(BaseModel):
    scope: Literal["single", "following"] = "single"
    reason: Optional[str] = Field(None, max_length=500)


class AppointmentRescheduleRequest(BaseModel):
    start_time: time = Field(..., description="New local start time, HH:MM")
    new_date: Optional[date] = Field(None, description="Only for scope=single")
    duration_minutes: Optional[int] = Field(None, gt=0, le=24 * 60)
    scope: Literal["single", "following"] = "single"

    @field_validator("start_time")
    @classmethod
    def minute_precision(cls, v: time) -> time:
        if v.second or v.microsecond:
            raise ValueError("start_time has minute precision (HH:MM)")
        return v.replace(tzinfo=None)
