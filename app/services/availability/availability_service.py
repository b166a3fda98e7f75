# ===== app/services/availability/availability_service.py =====
"""
Exception overlay resolver.

Layers per-date exceptions and standalone slots over the weekly rules to get the
effective availability of a clinician. Read-only: it never writes to the stores.
Each call reads its rows once and computes without further I/O, so every result is
a consistent snapshot.
"""
from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Tuple
import logging

from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.core.exceptions import InvalidLocalTime, ValidationError
from app.models.availability import AvailabilityException, AvailabilityRule, RuleStatus
from app.services.availability.types import TimeWindow
from app.services.timezone.timezone_service import TimeZoneService

logger = logging.getLogger(__name__)


def resolve_windows(
        day: date,
        rules: Iterable[AvailabilityRule],
        exceptions: Iterable[AvailabilityException]
) -> List[TimeWindow]:
    """
    Effective windows for one date from already-fetched rows.

    Per active rule matching the weekday, highest precedence first:
      1. cancelled exception for (date, rule) -> nothing for that rule
      2. live exception for (date, rule)      -> the exception's window only
      3. otherwise                            -> the rule's window
    A live standalone slot on the date is added on top. Overlapping or touching
    windows are merged.
    """
    by_rule = {}
    standalone = None
    for exc in exceptions:
        if exc.specific_date != day:
            continue
        if exc.original_rule_id is None:
            standalone = exc
        else:
            by_rule[exc.original_rule_id] = exc

    windows = []
    for rule in rules:
        if rule.status != RuleStatus.ACTIVE or rule.day_of_week != day.weekday():
            continue

        exc = by_rule.get(rule.id)
        if exc is None:
            windows.append(TimeWindow(rule.start_time, rule.end_time))
        elif not exc.is_deleted:
            windows.append(TimeWindow(exc.start_time, exc.end_time))
        # cancelled: absolute for this date, no fallback to the rule

    if standalone is not None and not standalone.is_deleted:
        windows.append(TimeWindow(standalone.start_time, standalone.end_time))

    return _merge_windows(windows)


def _merge_windows(windows: List[TimeWindow]) -> List[TimeWindow]:
    """Join overlapping or adjacent windows, sorted by start."""
    if not windows:
        return []

    ordered = sorted(windows, key=lambda w: (w.start, w.end))
    merged = [ordered[0]]

    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = TimeWindow(last.start, current.end)
        else:
            merged.append(current)

    return merged


class AvailabilityService:
    """Effective availability for clinicians"""

    @staticmethod
    def resolve_day(
            db: Session,
            clinician_id: str,
            day: date,
            time_zone: str
    ) -> List[TimeWindow]:
        """
        Effective local windows for one date.

        Weekday matching happens on the local date, before any UTC conversion, so a
        DST change never moves a rule onto a neighbouring day.
        """
        TimeZoneService.get_zone(time_zone)

        rules = db.query(AvailabilityRule).filter(
            AvailabilityRule.clinician_id == clinician_id,
            AvailabilityRule.status == RuleStatus.ACTIVE,
            AvailabilityRule.day_of_week == day.weekday()
        ).all()

        exceptions = db.query(AvailabilityException).filter(
            AvailabilityException.clinician_id == clinician_id,
            AvailabilityException.specific_date == day
        ).all()

        windows = resolve_windows(day, rules, exceptions)
        logger.debug(
            f"Resolved {len(windows)} window(s) for clinician {clinician_id} on {day.isoformat()}"
        )
        return windows

    @staticmethod
    def resolve_range(
            db: Session,
            clinician_id: str,
            start_date: date,
            end_date: date,
            time_zone: str
    ) -> Dict[date, List[TimeWindow]]:
        """
        Effective windows for every date in [start_date, end_date].
        Dates without availability are omitted.
        """
        TimeZoneService.get_zone(time_zone)

        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date", field="end_date")

        max_days = get_settings().MAX_RESOLUTION_RANGE_DAYS
        if (end_date - start_date).days + 1 > max_days:
            raise ValidationError(
                f"Date range may span at most {max_days} days", field="end_date"
            )

        rules = db.query(AvailabilityRule).filter(
            AvailabilityRule.clinician_id == clinician_id,
            AvailabilityRule.status == RuleStatus.ACTIVE
        ).all()

        exceptions_by_date = defaultdict(list)
        for exc in db.query(AvailabilityException).filter(
                AvailabilityException.clinician_id == clinician_id,
                AvailabilityException.specific_date >= start_date,
                AvailabilityException.specific_date <= end_date
        ).all():
            exceptions_by_date[exc.specific_date].append(exc)

        result = {}
        current = start_date
        while current <= end_date:
            windows = resolve_windows(current, rules, exceptions_by_date.get(current, []))
            if windows:
                result[current] = windows
            current += timedelta(days=1)

        return result

    @staticmethod
    def describe_windows(
            day: date,
            windows: List[TimeWindow],
            time_zone: str,
            display_time_zone: str
    ) -> List[Dict[str, Any]]:
        """
        Render windows for a caller: UTC instants plus wall-clock times in the
        display zone. A window can land on another calendar date in the display zone.
        """
        described = []
        for window in windows:
            start_utc, end_utc = window.to_utc(day, time_zone)
            start_date, start_time = TimeZoneService.from_utc(start_utc, display_time_zone)
            end_date, end_time = TimeZoneService.from_utc(end_utc, display_time_zone)

            described.append({
                "start": window.start.strftime("%H:%M"),
                "end": window.end.strftime("%H:%M"),
                "start_utc": start_utc.isoformat(),
                "end_utc": end_utc.isoformat(),
                "display": {
                    "time_zone": display_time_zone,
                    "start_date": start_date.isoformat(),
                    "start": start_time.strftime("%H:%M"),
                    "end_date": end_date.isoformat(),
                    "end": end_time.strftime("%H:%M"),
                },
            })

        return described

    @staticmethod
    def describe_range(
            resolved: Dict[date, List[TimeWindow]],
            time_zone: str,
            display_time_zone: str
    ) -> Tuple[Dict[str, List[Dict[str, Any]]], Dict[str, Dict[str, Any]]]:
        """
        describe_windows for every resolved date. A date whose window touches a wall-clock
        time skipped by DST is reported under errors instead of failing the whole range.
        """
        days = {}
        errors = {}
        for day, windows in resolved.items():
            try:
                days[day.isoformat()] = AvailabilityService.describe_windows(
                    day, windows, time_zone, display_time_zone
                )
            except InvalidLocalTime as e:
                logger.warning(f"Skipping {day.isoformat()} in {time_zone}: {e.message}")
                errors[day.isoformat()] = e.to_dict()

        return days, errors
