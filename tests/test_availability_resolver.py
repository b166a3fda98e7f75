from datetime import date, time
from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.core.exceptions import InvalidTimeZone, ValidationError
from app.models.availability import RuleStatus
from app.services.availability.availability_service import AvailabilityService, resolve_windows
from app.services.availability.exception_service import AvailabilityExceptionService
from app.services.availability.rule_service import AvailabilityRuleService
from app.services.availability.types import TimeWindow

CLINICIAN = "clinician-1"
NEW_YORK = "America/New_York"


def _rule(day_of_week, start, end, status=RuleStatus.ACTIVE):
    return SimpleNamespace(id=uuid4(), day_of_week=day_of_week, start_time=start, end_time=end, status=status)


def _exception(day, rule=None, start=None, end=None, is_deleted=False):
    return SimpleNamespace(
        specific_date=day,
        original_rule_id=rule.id if rule else None,
        start_time=start,
        end_time=end,
        is_deleted=is_deleted,
    )


class TestResolveWindows:
    monday = date(2024, 3, 11)

    def test_rule_applies_on_its_weekday_only(self):
        rule = _rule(0, time(9), time(17))

        assert resolve_windows(self.monday, [rule], []) == [TimeWindow(time(9), time(17))]
        assert resolve_windows(date(2024, 3, 12), [rule], []) == []

    def test_override_replaces_the_rule_window(self):
        rule = _rule(0, time(9), time(17))
        override = _exception(self.monday, rule, time(10), time(14))

        assert resolve_windows(self.monday, [rule], [override]) == [TimeWindow(time(10), time(14))]

    def test_cancellation_is_absolute(self):
        rule = _rule(0, time(9), time(17))
        cancelled = _exception(self.monday, rule, is_deleted=True)

        assert resolve_windows(self.monday, [rule], [cancelled]) == []

    def test_exception_only_affects_its_own_rule(self):
        morning = _rule(0, time(9), time(12))
        afternoon = _rule(0, time(13), time(17))
        cancelled = _exception(self.monday, morning, is_deleted=True)

        assert resolve_windows(self.monday, [morning, afternoon], [cancelled]) == [TimeWindow(time(13), time(17))]

    def test_standalone_is_added_alongside_rules(self):
        rule = _rule(0, time(9), time(12))
        standalone = _exception(self.monday, None, time(18), time(20))

        assert resolve_windows(self.monday, [rule], [standalone]) == [
            TimeWindow(time(9), time(12)),
            TimeWindow(time(18), time(20)),
        ]

    def test_standalone_without_rules(self):
        saturday = date(2024, 3, 16)
        standalone = _exception(saturday, None, time(10), time(12))
        cancelled = _exception(saturday, None, time(10), time(12), is_deleted=True)

        assert resolve_windows(saturday, [], [standalone]) == [TimeWindow(time(10), time(12))]
        assert resolve_windows(saturday, [], [cancelled]) == []

    def test_overlapping_and_adjacent_windows_merge(self):
        rules = [
            _rule(0, time(9), time(12)),
            _rule(0, time(11), time(13)),
            _rule(0, time(13), time(14)),
            _rule(0, time(15), time(16)),
        ]

        assert resolve_windows(self.monday, rules, []) == [
            TimeWindow(time(9), time(14)),
            TimeWindow(time(15), time(16)),
        ]

    def test_deactivated_rules_are_ignored(self):
        rule = _rule(0, time(9), time(17), status=RuleStatus.DEACTIVATED)

        assert resolve_windows(self.monday, [rule], []) == []


def test_override_affects_only_its_date(db):
    rule = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(9), time(17))
    AvailabilityExceptionService.override_occurrence(db, CLINICIAN, rule.id, date(2024, 3, 11), time(10), time(14))

    assert AvailabilityService.resolve_day(db, CLINICIAN, date(2024, 3, 11), NEW_YORK) == [
        TimeWindow(time(10), time(14))
    ]
    assert AvailabilityService.resolve_day(db, CLINICIAN, date(2024, 3, 18), NEW_YORK) == [
        TimeWindow(time(9), time(17))
    ]


def test_restored_date_shows_the_new_window(db):
    rule = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(9), time(17))
    AvailabilityExceptionService.cancel_occurrence(db, CLINICIAN, rule.id, date(2024, 3, 11))
    assert AvailabilityService.resolve_day(db, CLINICIAN, date(2024, 3, 11), NEW_YORK) == []

    AvailabilityExceptionService.override_occurrence(db, CLINICIAN, rule.id, date(2024, 3, 11), time(12), time(15))

    assert AvailabilityService.resolve_day(db, CLINICIAN, date(2024, 3, 11), NEW_YORK) == [
        TimeWindow(time(12), time(15))
    ]


def test_resolve_range_omits_empty_days(db):
    AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(9), time(17))
    AvailabilityExceptionService.upsert_standalone(db, CLINICIAN, date(2024, 3, 16), time(10), time(12))

    resolved = AvailabilityService.resolve_range(db, CLINICIAN, date(2024, 3, 10), date(2024, 3, 18), NEW_YORK)

    assert list(resolved) == [date(2024, 3, 11), date(2024, 3, 16), date(2024, 3, 18)]


def test_resolve_range_validates_bounds(db):
    with pytest.raises(ValidationError):
        AvailabilityService.resolve_range(db, CLINICIAN, date(2024, 3, 18), date(2024, 3, 10), NEW_YORK)
    with pytest.raises(ValidationError):
        AvailabilityService.resolve_range(db, CLINICIAN, date(2024, 1, 1), date(2024, 12, 31), NEW_YORK)
    with pytest.raises(InvalidTimeZone):
        AvailabilityService.resolve_range(db, CLINICIAN, date(2024, 3, 10), date(2024, 3, 18), "Nowhere/Land")


def test_rule_keeps_local_hours_across_dst(db):
    AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(9), time(17))

    before = AvailabilityService.describe_windows(
        date(2024, 3, 4), AvailabilityService.resolve_day(db, CLINICIAN, date(2024, 3, 4), NEW_YORK),
        NEW_YORK, NEW_YORK
    )
    after = AvailabilityService.describe_windows(
        date(2024, 3, 11), AvailabilityService.resolve_day(db, CLINICIAN, date(2024, 3, 11), NEW_YORK),
        NEW_YORK, NEW_YORK
    )

    assert before[0]["start_utc"] == "2024-03-04T14:00:00+00:00"
    assert after[0]["start_utc"] == "2024-03-11T13:00:00+00:00"
    assert before[0]["display"]["start"] == after[0]["display"]["start"] == "09:00"


def test_display_zone_can_shift_the_date():
    windows = [TimeWindow(time(20), time(22))]

    described = AvailabilityService.describe_windows(date(2024, 6, 3), windows, NEW_YORK, "Asia/Tokyo")

    assert described[0]["start"] == "20:00"
    assert described[0]["display"] == {
        "time_zone": "Asia/Tokyo",
        "start_date": "2024-06-04",
        "start": "09:00",
        "end_date": "2024-06-04",
        "end": "11:00",
    }


def test_series_edit_applies_to_dates_without_exceptions(db):
    rule = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(9), time(17))
    AvailabilityExceptionService.override_occurrence(db, CLINICIAN, rule.id, date(2024, 3, 11), time(10), time(14))

    AvailabilityRuleService.update_rule(db, CLINICIAN, rule.id, time(8), time(12))

    # Rules are not versioned: an earlier date without an exception shows the new times too
    assert AvailabilityService.resolve_day(db, CLINICIAN, date(2024, 3, 4), NEW_YORK) == [
        TimeWindow(time(8), time(12))
    ]
    assert AvailabilityService.resolve_day(db, CLINICIAN, date(2024, 3, 11), NEW_YORK) == [
        TimeWindow(time(10), time(14))
    ]


def test_describe_range_reports_dst_gap_days_separately():
    resolved = {
        date(2024, 3, 3): [TimeWindow(time(2), time(4))],
        date(2024, 3, 10): [TimeWindow(time(2), time(4))],
    }

    days, errors = AvailabilityService.describe_range(resolved, NEW_YORK, NEW_YORK)

    assert list(days) == ["2024-03-03"]
    assert errors["2024-03-10"]["field"] == "start_time"
