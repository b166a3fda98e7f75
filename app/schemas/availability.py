"""
Pydantic schemas for availability rules, exceptions and resolved windows
"""
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator


class TimeRangeRequest(BaseModel):
    """Local wall-clock window; start must be before end"""
    start_time: time = Field(..., description="Local start time, HH:MM")
    end_time: time = Field(..., description="Local end time, HH:MM")

    @field_validator("start_time", "end_time")
    @classmethod
    def minute_precision(cls, v: time) -> time:
        if v.second or v.microsecond:
            raise ValueError("times have minute precision (HH:MM)")
        return v.replace(tzinfo=None)

    @field_validator("end_time")
    @classmethod
    def after_start(cls, v: time, info: ValidationInfo) -> time:
        start = info.data.get("start_time")
        if start is not None and start >= v:
            raise ValueError("start_time must be before end_time")
        return v


# ============================================================================
# Request Schemas
# ============================================================================

class RuleUpsertRequest(TimeRangeRequest):
    """Weekly recurring block; re-submitting the same shape is a no-op"""
    day_of_week: int = Field(..., ge=0, le=6, description="0=Monday ... 6=Sunday")


class RuleUpdateRequest(TimeRangeRequest):
    day_of_week: Optional[int] = Field(None, ge=0, le=6)


class OccurrenceOverrideRequest(TimeRangeRequest):
    pass


class StandaloneSlotRequest(TimeRangeRequest):
    pass


# ============================================================================
# Response Schemas
# ============================================================================

class RuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    clinician_id: str
    day_of_week: int
    start_time: time
    end_time: time
    status: str
    deactivated_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def enum_value(cls, v):
        return getattr(v, "value", v)


class ExceptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    clinician_id: str
    specific_date: date
    original_rule_id: Optional[UUID] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_deleted: bool
    kind: str = "override"

    @model_validator(mode="after")
    def set_kind(self):
        self.kind = "standalone" if self.original_rule_id is None else "override"
        return self


class ResolvedDayResponse(BaseModel):
    clinician_id: str
    date: date
    time_zone: str
    display_time_zone: str
    windows: List[Dict[str, Any]]


class ResolvedRangeResponse(BaseModel):
    clinician_id: str
    start_date: date
    end_date: date
    time_zone: str
    display_time_zone: str
    days: Dict[str, List[Dict[str, Any]]]
    errors: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
