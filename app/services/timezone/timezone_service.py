# ============================================================================
# FILE: app/services/timezone/timezone_service.py
# Single chokepoint for local wall-clock <-> UTC conversion
# ============================================================================
"""
Every date/time string crossing the API boundary is local wall-clock time paired
with an IANA zone; every persisted instant is UTC. All conversion between the two
goes through TimeZoneService so no call site does its own offset math.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.config.settings import get_settings
from app.core.exceptions import InvalidLocalTime, InvalidTimeZone

logger = logging.getLogger(__name__)

UTC = timezone.utc

# Abbreviations users type in place of a real zone
ZONE_ALIASES = {
    "EST": "America/New_York",
    "EDT": "America/New_York",
    "CST": "America/Chicago",
    "CDT": "America/Chicago",
    "MST": "America/Denver",
    "MDT": "America/Denver",
    "PST": "America/Los_Angeles",
    "PDT": "America/Los_Angeles",
}


@lru_cache(maxsize=256)
def _load_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


class TimeZoneService:
    """Pure conversions between a zone's wall clock and UTC instants"""

    @staticmethod
    def get_zone(name: Optional[str], field: str = "time_zone") -> ZoneInfo:
        """Strict lookup. Raises InvalidTimeZone instead of guessing."""
        if not name or not isinstance(name, str):
            raise InvalidTimeZone("A time zone identifier is required", field=field)
        try:
            return _load_zone(name.strip())
        except (ZoneInfoNotFoundError, ValueError, OSError):
            raise InvalidTimeZone(f"'{name}' is not a recognized IANA time zone", field=field)

    @staticmethod
    def is_valid_zone(name: Optional[str]) -> bool:
        try:
            TimeZoneService.get_zone(name)
            return True
        except InvalidTimeZone:
            return False

    @staticmethod
    def ensure_iana_zone(
            candidate: Optional[str],
            default: Optional[str] = None,
            strict: bool = False,
            field: str = "time_zone"
    ) -> str:
        """
        Normalize a user-supplied zone identifier.

        Returns the candidate when it is a valid IANA zone, its region zone when it is a
        known abbreviation (EST, PDT, ...), and otherwise the configured default zone.
        The host's local zone is never consulted.

        With strict=True an unrecognized identifier raises InvalidTimeZone instead of
        falling back; writes that persist UTC instants use this mode.
        """
        fallback = default or get_settings().DEFAULT_TIMEZONE

        if candidate and isinstance(candidate, str):
            candidate = candidate.strip()
            if TimeZoneService.is_valid_zone(candidate) and candidate.upper() not in ZONE_ALIASES:
                return candidate

            alias = ZONE_ALIASES.get(candidate.upper())
            if alias:
                return alias

            if strict:
                raise InvalidTimeZone(f"'{candidate}' is not a recognized IANA time zone", field=field)
            logger.warning(f"Unrecognized time zone '{candidate}', falling back to {fallback}")
        elif strict:
            raise InvalidTimeZone("A time zone identifier is required", field=field)
        else:
            logger.debug(f"No time zone supplied, using {fallback}")

        # The fallback itself must be real, otherwise every conversion downstream is wrong
        TimeZoneService.get_zone(fallback, field="DEFAULT_TIMEZONE")
        return fallback

    @staticmethod
    def to_utc(
            local_date: date,
            local_time: time,
            zone_name: str,
            field: str = "local_time"
    ) -> datetime:
        """
        Interpret date + time as wall clock in zone_name and return the UTC instant.

        Raises InvalidLocalTime for wall-clock times skipped by a forward DST jump.
        Repeated times (backward jump) resolve to their first occurrence.
        """
        tz = TimeZoneService.get_zone(zone_name)

        naive = datetime.combine(local_date, local_time.replace(tzinfo=None))
        aware = naive.replace(tzinfo=tz, fold=0)
        instant = aware.astimezone(UTC)

        # A skipped wall-clock time does not survive the round trip
        if instant.astimezone(tz).replace(tzinfo=None) != naive:
            raise InvalidLocalTime(
                f"{local_date.isoformat()} {local_time.strftime('%H:%M')} does not exist "
                f"in {zone_name} (daylight saving time transition)",
                field=field,
            )

        return instant

    @staticmethod
    def from_utc(instant: datetime, zone_name: str) -> Tuple[date, time]:
        """UTC instant -> (local date, local time) in zone_name"""
        tz = TimeZoneService.get_zone(zone_name)
        local = TimeZoneService.as_utc(instant).astimezone(tz)
        return local.date(), local.time()

    @staticmethod
    def as_utc(instant: datetime) -> datetime:
        """Normalize an instant to aware UTC. Naive values are stored UTC and read back bare."""
        if instant.tzinfo is None:
            return instant.replace(tzinfo=UTC)
        return instant.astimezone(UTC)

    @staticmethod
    def day_start_utc(local_date: date, zone_name: str) -> datetime:
        """
        UTC instant at which local_date begins in zone_name. Used for range bounds, so
        a midnight skipped by DST resolves to the transition instant rather than failing.
        """
        tz = TimeZoneService.get_zone(zone_name)
        return datetime.combine(local_date, time(0)).replace(tzinfo=tz, fold=0).astimezone(UTC)

    @staticmethod
    def convert_local(
            local_date: date,
            local_time: time,
            source_zone: str,
            target_zone: str
    ) -> Tuple[date, time]:
        """Wall clock in source_zone -> wall clock in target_zone, through UTC"""
        instant = TimeZoneService.to_utc(local_date, local_time, source_zone)
        return TimeZoneService.from_utc(instant, target_zone)

    @staticmethod
    def utc_offset(instant: datetime, zone_name: str) -> timedelta:
        tz = TimeZoneService.get_zone(zone_name)
        return TimeZoneService.as_utc(instant).astimezone(tz).utcoffset()
