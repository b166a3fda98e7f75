# app/schemas/__init__.py
from .availability import (
    TimeRangeRequest,
    RuleUpsertRequest,
    RuleUpdateRequest,
    OccurrenceOverrideRequest,
    StandaloneSlotRequest,
    RuleResponse,
    ExceptionResponse,
    ResolvedDayResponse,
    ResolvedRangeResponse
)

from .appointment import (
    AppointmentCreateRequest,
    AppointmentCancelRequest,
    AppointmentRescheduleRequest
)
