# ============================================================================
# FILE: app/services/availability/types.py
# Value types shared by the availability stores and the resolver
# ============================================================================
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Dict, Optional, Tuple, Union
from uuid import UUID

from app.core.exceptions import ValidationError
from app.services.timezone.timezone_service import TimeZoneService


@dataclass(frozen=True)
class TimeWindow:
    """Half-open local wall-clock window [start, end) on a single date"""
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise ValidationError(
                f"start_time {self.start.strftime('%H:%M')} must be before "
                f"end_time {self.end.strftime('%H:%M')}",
                field="end_time",
            )

    def to_utc(self, on_date: date, zone_name: str) -> Tuple[datetime, datetime]:
        """UTC instants of this window on on_date, each converted on its own"""
        return (
            TimeZoneService.to_utc(on_date, self.start, zone_name, field="start_time"),
            TimeZoneService.to_utc(on_date, self.end, zone_name, field="end_time"),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.strftime("%H:%M"), "end": self.end.strftime("%H:%M")}


@dataclass(frozen=True)
class RuleOverride:
    """Exception bound to one occurrence of a weekly rule"""
    rule_id: UUID


@dataclass(frozen=True)
class Standalone:
    """Exception with no backing rule: a one-off slot"""


ExceptionTarget = Union[RuleOverride, Standalone]


def target_rule_id(target: ExceptionTarget) -> Optional[UUID]:
    """Storage key of a target: the rule id, or NULL for standalone slots"""
    if isinstance(target, RuleOverride):
        return target.rule_id
    if isinstance(target, Standalone):
        return None
    raise TypeError(f"Unknown exception target: {target!r}")
