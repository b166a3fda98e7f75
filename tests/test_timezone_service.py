from datetime import date, datetime, time, timedelta, timezone

import pytest

from app.core.exceptions import InvalidLocalTime, InvalidTimeZone
from app.services.timezone.timezone_service import TimeZoneService

NEW_YORK = "America/New_York"


def test_to_utc_follows_dst_offsets():
    winter = TimeZoneService.to_utc(date(2024, 1, 15), time(9, 0), NEW_YORK)
    summer = TimeZoneService.to_utc(date(2024, 7, 15), time(9, 0), NEW_YORK)

    assert winter == datetime(2024, 1, 15, 14, 0, tzinfo=timezone.utc)
    assert summer == datetime(2024, 7, 15, 13, 0, tzinfo=timezone.utc)


def test_round_trip_preserves_wall_clock():
    instant = TimeZoneService.to_utc(date(2024, 3, 11), time(10, 30), NEW_YORK)

    assert TimeZoneService.from_utc(instant, NEW_YORK) == (date(2024, 3, 11), time(10, 30))


def test_skipped_local_time_is_rejected():
    with pytest.raises(InvalidLocalTime) as exc_info:
        TimeZoneService.to_utc(date(2024, 3, 10), time(2, 30), NEW_YORK, field="start_time")

    assert exc_info.value.field == "start_time"


def test_repeated_local_time_takes_first_occurrence():
    instant = TimeZoneService.to_utc(date(2024, 11, 3), time(1, 30), NEW_YORK)

    # 01:30 EDT (UTC-4), not 01:30 EST
    assert instant == datetime(2024, 11, 3, 5, 30, tzinfo=timezone.utc)


def test_unknown_zone_is_an_error_for_conversions():
    with pytest.raises(InvalidTimeZone):
        TimeZoneService.to_utc(date(2024, 1, 1), time(9, 0), "Mars/Olympus_Mons")


@pytest.mark.parametrize("alias,expected", [
    ("EST", "America/New_York"),
    ("pdt", "America/Los_Angeles"),
    ("CST", "America/Chicago"),
])
def test_ensure_iana_zone_maps_abbreviations(alias, expected):
    assert TimeZoneService.ensure_iana_zone(alias) == expected


def test_ensure_iana_zone_falls_back_to_configured_default():
    assert TimeZoneService.ensure_iana_zone("Not/AZone") == "UTC"
    assert TimeZoneService.ensure_iana_zone(None, default="Europe/Berlin") == "Europe/Berlin"


def test_ensure_iana_zone_strict_mode_raises():
    with pytest.raises(InvalidTimeZone):
        TimeZoneService.ensure_iana_zone("Not/AZone", strict=True)
    with pytest.raises(InvalidTimeZone):
        TimeZoneService.ensure_iana_zone("", strict=True)


def test_naive_instants_are_treated_as_utc():
    naive = datetime(2024, 6, 1, 12, 0)

    assert TimeZoneService.as_utc(naive) == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_convert_local_can_change_the_calendar_date():
    converted = TimeZoneService.convert_local(date(2024, 6, 3), time(22, 0), NEW_YORK, "Asia/Tokyo")

    assert converted == (date(2024, 6, 4), time(11, 0))


def test_day_start_on_a_dst_day():
    start = TimeZoneService.day_start_utc(date(2024, 3, 10), NEW_YORK)
    next_start = TimeZoneService.day_start_utc(date(2024, 3, 11), NEW_YORK)

    assert next_start - start == timedelta(hours=23)
    assert TimeZoneService.utc_offset(next_start, NEW_YORK) == timedelta(hours=-4)
