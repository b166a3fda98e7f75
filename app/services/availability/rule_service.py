# ============================================================================
# FILE: app/services/availability/rule_service.py
# Recurring weekly availability store - no FastAPI dependencies
# ============================================================================
from datetime import datetime, time, timezone
from typing import List, Optional
from uuid import UUID, uuid4
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.availability import AvailabilityException, AvailabilityRule, RuleStatus
from app.services.availability.types import TimeWindow
from app.utils.db_writes import conflict_guard, dialect_insert

logger = logging.getLogger(__name__)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _validate_day(day_of_week: int) -> int:
    if not isinstance(day_of_week, int) or isinstance(day_of_week, bool) or not 0 <= day_of_week <= 6:
        raise ValidationError(
            f"day_of_week must be 0 (Monday) through 6 (Sunday), got {day_of_week!r}",
            field="day_of_week",
        )
    return day_of_week


def _validate_clinician(clinician_id: str) -> str:
    if not clinician_id or not str(clinician_id).strip():
        raise ValidationError("clinician_id is required", field="clinician_id")
    return str(clinician_id).strip()


class AvailabilityRuleService:
    """Owns AvailabilityRule records: one weekly block per clinician/day/time-range."""

    @staticmethod
    def list_active_rules(
            db: Session,
            clinician_id: str,
            day_of_week: Optional[int] = None
    ) -> List[AvailabilityRule]:
        """Active rules ordered by weekday then start time."""
        query = db.query(AvailabilityRule).filter(
            AvailabilityRule.clinician_id == clinician_id,
            AvailabilityRule.status == RuleStatus.ACTIVE
        )
        if day_of_week is not None:
            query = query.filter(AvailabilityRule.day_of_week == _validate_day(day_of_week))

        return query.order_by(AvailabilityRule.day_of_week, AvailabilityRule.start_time).all()

    @staticmethod
    def get_rule(db: Session, clinician_id: str, rule_id: UUID) -> AvailabilityRule:
        rule = db.query(AvailabilityRule).filter(
            AvailabilityRule.id == rule_id,
            AvailabilityRule.clinician_id == clinician_id
        ).first()

        if not rule:
            raise NotFoundError(f"Availability rule {rule_id} not found", field="rule_id")
        return rule

    @staticmethod
    def upsert_rule(
            db: Session,
            clinician_id: str,
            day_of_week: int,
            start_time: time,
            end_time: time
    ) -> AvailabilityRule:
        """
        Create a weekly rule, idempotent on (clinician, day, start, end).

        Re-submitting an existing shape returns the same row; a deactivated row with
        that shape is re-activated instead of duplicated. The dedupe happens in a single
        INSERT .. ON CONFLICT so concurrent submitters cannot both insert.
        """
        clinician_id = _validate_clinician(clinician_id)
        _validate_day(day_of_week)
        TimeWindow(start_time, end_time)

        stmt = dialect_insert(db, AvailabilityRule).values(
            id=uuid4(),
            clinician_id=clinician_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            status=RuleStatus.ACTIVE,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["clinician_id", "day_of_week", "start_time", "end_time"],
            set_={
                "status": RuleStatus.ACTIVE,
                "deactivated_at": None,
                "updated_at": func.now(),
            },
        )

        with conflict_guard(db, f"Could not save the {DAY_NAMES[day_of_week]} rule", field="day_of_week"):
            db.execute(stmt)
            db.commit()

        rule = db.query(AvailabilityRule).populate_existing().filter(
            AvailabilityRule.clinician_id == clinician_id,
            AvailabilityRule.day_of_week == day_of_week,
            AvailabilityRule.start_time == start_time,
            AvailabilityRule.end_time == end_time
        ).one()

        logger.info(
            f"Upserted rule {rule.id} for clinician {clinician_id}: "
            f"{DAY_NAMES[day_of_week]} {start_time:%H:%M}-{end_time:%H:%M}"
        )
        return rule

    @staticmethod
    def update_rule(
            db: Session,
            clinician_id: str,
            rule_id: UUID,
            start_time: time,
            end_time: time,
            day_of_week: Optional[int] = None
    ) -> AvailabilityRule:
        """
        Edit the whole series in place. Rules are not versioned: every date without an
        exception, past or future, resolves to the new times. Occurrences that already
        carry an exception keep it.
        """
        TimeWindow(start_time, end_time)
        rule = AvailabilityRuleService.get_rule(db, clinician_id, rule_id)

        if not rule.is_active:
            raise NotFoundError(f"Availability rule {rule_id} is deactivated", field="rule_id")

        new_day = rule.day_of_week if day_of_week is None else _validate_day(day_of_week)

        clash = db.query(AvailabilityRule).filter(
            AvailabilityRule.clinician_id == clinician_id,
            AvailabilityRule.day_of_week == new_day,
            AvailabilityRule.start_time == start_time,
            AvailabilityRule.end_time == end_time,
            AvailabilityRule.id != rule.id
        ).first()
        if clash:
            raise ConflictError(
                f"A {DAY_NAMES[new_day]} rule {start_time:%H:%M}-{end_time:%H:%M} already exists ({clash.id})",
                field="start_time",
            )

        rule.day_of_week = new_day
        rule.start_time = start_time
        rule.end_time = end_time

        with conflict_guard(db, f"Could not update rule {rule_id}", field="start_time"):
            db.commit()

        db.refresh(rule)
        logger.info(f"Updated rule {rule.id}: {DAY_NAMES[new_day]} {start_time:%H:%M}-{end_time:%H:%M}")
        return rule

    @staticmethod
    def deactivate_rule(db: Session, clinician_id: str, rule_id: UUID) -> AvailabilityRule:
        """Soft delete. The row stays so exceptions keep pointing at real history."""
        rule = AvailabilityRuleService.get_rule(db, clinician_id, rule_id)

        if not rule.is_active:
            raise NotFoundError(f"Availability rule {rule_id} is already deactivated", field="rule_id")

        rule.status = RuleStatus.DEACTIVATED
        rule.deactivated_at = datetime.now(timezone.utc)

        with conflict_guard(db, f"Could not deactivate rule {rule_id}", field="rule_id"):
            db.commit()

        db.refresh(rule)
        logger.info(f"Deactivated rule {rule.id} for clinician {clinician_id}")
        return rule

    @staticmethod
    def delete_rule(db: Session, clinician_id: str, rule_id: UUID) -> None:
        """Hard delete, allowed only while no exception references the rule."""
        rule = AvailabilityRuleService.get_rule(db, clinician_id, rule_id)

        references = db.query(func.count(AvailabilityException.id)).filter(
            AvailabilityException.original_rule_id == rule.id
        ).scalar()
        if references:
            raise ConflictError(
                f"Rule {rule_id} is referenced by {references} exception(s); deactivate it instead",
                field="rule_id",
            )

        db.delete(rule)
        with conflict_guard(db, f"Rule {rule_id} gained references while being deleted", field="rule_id"):
            db.commit()

        logger.info(f"Deleted unreferenced rule {rule_id} for clinician {clinician_id}")
