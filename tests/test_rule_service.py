from datetime import date, time
from uuid import uuid4

import pytest

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.availability import AvailabilityRule, RuleStatus
from app.services.availability.exception_service import AvailabilityExceptionService
from app.services.availability.rule_service import AvailabilityRuleService

CLINICIAN = "clinician-1"


def test_upsert_is_idempotent(db):
    first = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(9), time(17))
    second = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(9), time(17))

    assert first.id == second.id
    assert db.query(AvailabilityRule).count() == 1


def test_multiple_rules_per_weekday(db):
    AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(13), time(17))
    AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(9), time(12))
    AvailabilityRuleService.upsert_rule(db, "someone-else", 0, time(9), time(12))

    rules = AvailabilityRuleService.list_active_rules(db, CLINICIAN, day_of_week=0)

    assert [(r.start_time, r.end_time) for r in rules] == [(time(9), time(12)), (time(13), time(17))]


@pytest.mark.parametrize("day,start,end,field", [
    (7, time(9), time(17), "day_of_week"),
    (-1, time(9), time(17), "day_of_week"),
    (0, time(17), time(9), "end_time"),
    (0, time(9), time(9), "end_time"),
])
def test_upsert_rejects_bad_input(db, day, start, end, field):
    with pytest.raises(ValidationError) as exc_info:
        AvailabilityRuleService.upsert_rule(db, CLINICIAN, day, start, end)

    assert exc_info.value.field == field
    assert db.query(AvailabilityRule).count() == 0


def test_deactivate_keeps_the_row(db):
    rule = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 2, time(9), time(17))

    deactivated = AvailabilityRuleService.deactivate_rule(db, CLINICIAN, rule.id)

    assert deactivated.status == RuleStatus.DEACTIVATED
    assert deactivated.deactivated_at is not None
    assert AvailabilityRuleService.list_active_rules(db, CLINICIAN) == []
    assert db.query(AvailabilityRule).count() == 1

    with pytest.raises(NotFoundError):
        AvailabilityRuleService.deactivate_rule(db, CLINICIAN, rule.id)


def test_upsert_reactivates_a_deactivated_shape(db):
    rule = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 2, time(9), time(17))
    AvailabilityRuleService.deactivate_rule(db, CLINICIAN, rule.id)

    again = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 2, time(9), time(17))

    assert again.id == rule.id
    assert again.status == RuleStatus.ACTIVE
    assert again.deactivated_at is None


def test_update_rule_changes_the_series(db):
    rule = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(9), time(17))

    updated = AvailabilityRuleService.update_rule(db, CLINICIAN, rule.id, time(8), time(16), day_of_week=1)

    assert (updated.day_of_week, updated.start_time, updated.end_time) == (1, time(8), time(16))


def test_update_rule_to_an_existing_shape_conflicts(db):
    AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(9), time(12))
    other = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(13), time(17))

    with pytest.raises(ConflictError):
        AvailabilityRuleService.update_rule(db, CLINICIAN, other.id, time(9), time(12))


def test_delete_only_unreferenced_rules(db):
    referenced = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(9), time(17))
    unreferenced = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 1, time(9), time(17))
    AvailabilityExceptionService.cancel_occurrence(db, CLINICIAN, referenced.id, date(2024, 3, 11))

    with pytest.raises(ConflictError):
        AvailabilityRuleService.delete_rule(db, CLINICIAN, referenced.id)

    AvailabilityRuleService.delete_rule(db, CLINICIAN, unreferenced.id)
    assert db.query(AvailabilityRule).count() == 1


def test_rules_are_scoped_to_their_clinician(db):
    rule = AvailabilityRuleService.upsert_rule(db, CLINICIAN, 0, time(9), time(17))

    with pytest.raises(NotFoundError):
        AvailabilityRuleService.get_rule(db, "someone-else", rule.id)
    with pytest.raises(NotFoundError):
        AvailabilityRuleService.get_rule(db, CLINICIAN, uuid4())
