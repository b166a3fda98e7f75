# ============================================================================
# FILE: app/services/appointment/recurrence_service.py
# Occurrence dates for recurring appointment series
# ============================================================================
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Union
import logging

from dateutil.relativedelta import relativedelta
from dateutil.rrule import WEEKLY, rrule

from app.config.settings import get_settings
from app.core.exceptions import ValidationError
from app.models.appointment import RecurrencePattern

logger = logging.getLogger(__name__)


def parse_pattern(value: Union[str, RecurrencePattern, None]) -> RecurrencePattern:
    if isinstance(value, RecurrencePattern):
        return value
    try:
        return RecurrencePattern(value)
    except ValueError:
        allowed = ", ".join(p.value for p in RecurrencePattern)
        raise ValidationError(
            f"Unrecognized recurrence pattern {value!r}; expected one of: {allowed}",
            field="recurrence_pattern",
        )


def horizon_end(start_date: date, horizon_months: int) -> date:
    """First date past the series horizon; a short month clamps to its last day"""
    return start_date + relativedelta(months=horizon_months)


def generate_occurrences(
        start_date: date,
        pattern: Union[str, RecurrencePattern],
        horizon_months: Optional[int] = None
) -> List[date]:
    """
    Local occurrence dates of a series: start_date, then every 1/2/4 weeks while the
    date is before start_date + horizon_months.

    Only dates are produced. Callers convert each date's wall-clock time to UTC on
    its own; adding a fixed offset to a previous instant breaks across DST changes.
    """
    pattern = parse_pattern(pattern)

    if horizon_months is None:
        horizon_months = get_settings().RECURRENCE_HORIZON_MONTHS
    if horizon_months < 1:
        raise ValidationError("horizon_months must be at least 1", field="horizon_months")

    end = horizon_end(start_date, horizon_months)

    # rrule's until is inclusive
    rule = rrule(
        WEEKLY,
        interval=pattern.interval_days // 7,
        dtstart=datetime.combine(start_date, time()),
        until=datetime.combine(end - timedelta(days=1), time()),
    )
    occurrences = [occurrence.date() for occurrence in rule]

    logger.debug(
        f"Generated {len(occurrences)} {pattern.value} occurrence(s) "
        f"from {start_date.isoformat()} until {end.isoformat()}"
    )
    return occurrences
