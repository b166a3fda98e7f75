# ============================================================================
# FILE: app/services/availability/exception_service.py
# Exception overlay store: per-date overrides, cancellations, standalone slots
# ============================================================================
"""
Every write here is a single INSERT .. ON CONFLICT DO UPDATE keyed on
(clinician_id, specific_date, original_rule_id), so there is at most one row per
occurrence even with concurrent editors. Editing a cancelled date flips the same
row back to active instead of inserting a second one.
"""
from datetime import date, time
from typing import List, Optional
from uuid import uuid4
import logging

from sqlalchemy import func, text
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, ValidationError
from app.models.availability import AvailabilityException
from app.services.availability.rule_service import AvailabilityRuleService, DAY_NAMES
from app.services.availability.types import (
    ExceptionTarget, RuleOverride, Standalone, TimeWindow, target_rule_id
)
from app.utils.db_writes import conflict_guard, dialect_insert

logger = logging.getLogger(__name__)


class AvailabilityExceptionService:
    """Owns AvailabilityException rows (rule overrides and standalone slots)."""

    @staticmethod
    def get_exception(
            db: Session,
            clinician_id: str,
            specific_date: date,
            target: ExceptionTarget
    ) -> Optional[AvailabilityException]:
        """The single row for this date and target, cancelled or not."""
        rule_id = target_rule_id(target)
        query = db.query(AvailabilityException).filter(
            AvailabilityException.clinician_id == clinician_id,
            AvailabilityException.specific_date == specific_date
        )
        if rule_id is None:
            query = query.filter(AvailabilityException.original_rule_id.is_(None))
        else:
            query = query.filter(AvailabilityException.original_rule_id == rule_id)

        return query.populate_existing().first()

    @staticmethod
    def list_exceptions(
            db: Session,
            clinician_id: str,
            start_date: date,
            end_date: date,
            include_deleted: bool = True
    ) -> List[AvailabilityException]:
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date", field="end_date")

        query = db.query(AvailabilityException).filter(
            AvailabilityException.clinician_id == clinician_id,
            AvailabilityException.specific_date >= start_date,
            AvailabilityException.specific_date <= end_date
        )
        if not include_deleted:
            query = query.filter(AvailabilityException.is_deleted.is_(False))

        return query.order_by(
            AvailabilityException.specific_date,
            AvailabilityException.start_time
        ).all()

    @staticmethod
    def override_occurrence(
            db: Session,
            clinician_id: str,
            rule_id,
            specific_date: date,
            start_time: time,
            end_time: time
    ) -> AvailabilityException:
        """Replace one occurrence of a weekly rule with new times (re-activates a cancelled date)."""
        window = TimeWindow(start_time, end_time)
        AvailabilityExceptionService._check_occurrence(db, clinician_id, rule_id, specific_date)

        return AvailabilityExceptionService._upsert(
            db, clinician_id, specific_date, RuleOverride(rule_id), window
        )

    @staticmethod
    def cancel_occurrence(
            db: Session,
            clinician_id: str,
            rule_id,
            specific_date: date
    ) -> AvailabilityException:
        """Mark one occurrence of a weekly rule as unavailable, keeping the row as history."""
        AvailabilityExceptionService._check_occurrence(db, clinician_id, rule_id, specific_date)

        return AvailabilityExceptionService._upsert(
            db, clinician_id, specific_date, RuleOverride(rule_id), None
        )

    @staticmethod
    def upsert_standalone(
            db: Session,
            clinician_id: str,
            specific_date: date,
            start_time: time,
            end_time: time
    ) -> AvailabilityException:
        """One-off availability on a date, independent of any weekly rule."""
        window = TimeWindow(start_time, end_time)
        return AvailabilityExceptionService._upsert(
            db, clinician_id, specific_date, Standalone(), window
        )

    @staticmethod
    def cancel_standalone(db: Session, clinician_id: str, specific_date: date) -> AvailabilityException:
        existing = AvailabilityExceptionService.get_exception(db, clinician_id, specific_date, Standalone())
        if not existing:
            raise NotFoundError(
                f"No standalone availability on {specific_date.isoformat()}", field="specific_date"
            )

        return AvailabilityExceptionService._upsert(
            db, clinician_id, specific_date, Standalone(), None
        )

    @staticmethod
    def delete_standalone(db: Session, clinician_id: str, specific_date: date) -> None:
        """Hard delete. Standalone rows carry no rule history, so nothing else refers to them."""
        existing = AvailabilityExceptionService.get_exception(db, clinician_id, specific_date, Standalone())
        if not existing:
            raise NotFoundError(
                f"No standalone availability on {specific_date.isoformat()}", field="specific_date"
            )

        db.delete(existing)
        with conflict_guard(db, f"Could not delete standalone slot on {specific_date}", field="specific_date"):
            db.commit()

        logger.info(f"Deleted standalone slot for clinician {clinician_id} on {specific_date}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _check_occurrence(db: Session, clinician_id: str, rule_id, specific_date: date) -> None:
        """The date must be a real occurrence of an active rule owned by the clinician."""
        rule = AvailabilityRuleService.get_rule(db, clinician_id, rule_id)

        if not rule.is_active:
            raise NotFoundError(f"Availability rule {rule_id} is deactivated", field="rule_id")

        if specific_date.weekday() != rule.day_of_week:
            raise ValidationError(
                f"{specific_date.isoformat()} is a {DAY_NAMES[specific_date.weekday()]}, "
                f"rule {rule_id} repeats on {DAY_NAMES[rule.day_of_week]}",
                field="specific_date",
            )

    @staticmethod
    def _upsert(
            db: Session,
            clinician_id: str,
            specific_date: date,
            target: ExceptionTarget,
            window: Optional[TimeWindow]
    ) -> AvailabilityException:
        """window=None cancels the date (is_deleted, NULL times); otherwise it (re)activates it."""
        rule_id = target_rule_id(target)
        values = {
            "start_time": window.start if window else None,
            "end_time": window.end if window else None,
            "is_deleted": window is None,
        }

        stmt = dialect_insert(db, AvailabilityException).values(
            id=uuid4(),
            clinician_id=clinician_id,
            specific_date=specific_date,
            original_rule_id=rule_id,
            **values
        )
        if rule_id is None:
            stmt = stmt.on_conflict_do_update(
                index_elements=["clinician_id", "specific_date"],
                index_where=text("original_rule_id IS NULL"),
                set_={**values, "updated_at": func.now()},
            )
        else:
            stmt = stmt.on_conflict_do_update(
                index_elements=["clinician_id", "specific_date", "original_rule_id"],
                set_={**values, "updated_at": func.now()},
            )

        with conflict_guard(
                db,
                f"Availability for {specific_date.isoformat()} was changed concurrently",
                field="specific_date"
        ):
            db.execute(stmt)
            db.commit()

        row = AvailabilityExceptionService.get_exception(db, clinician_id, specific_date, target)

        action = "Cancelled" if window is None else "Set"
        kind = "standalone slot" if rule_id is None else f"occurrence of rule {rule_id}"
        logger.info(f"{action} {kind} for clinician {clinician_id} on {specific_date.isoformat()}")
        return row
