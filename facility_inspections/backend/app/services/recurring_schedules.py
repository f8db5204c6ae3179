# backend/app/services/recurring_schedules.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..db import unit_of_work
from ..domain.errors import NotFoundError, ValidationError
from ..domain.inspection_status import INSPECTION_TYPES
from ..domain.recurrence import FREQUENCIES, RecurrenceRule, upcoming_occurrences
from ..models import AppUser, InspectionTemplate, Property, RecurringInspection, Unit

log = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "assigned_to_id", "template_id", "end_date", "is_active")


def _utcnow() -> datetime:
    return datetime.utcnow()


def must_get_schedule(db: Session, schedule_id: int) -> RecurringInspection:
    row = db.get(RecurringInspection, int(schedule_id))
    if not row:
        raise NotFoundError("recurring inspection not found")
    return row


def validate_rule(
    *,
    frequency: str,
    interval: int,
    day_of_month: Optional[int] = None,
    day_of_week: Optional[int] = None,
) -> RecurrenceRule:
    freq = (frequency or "").strip().upper()
    if freq not in FREQUENCIES:
        raise ValidationError(f"frequency must be one of {', '.join(FREQUENCIES)}")
    if int(interval) < 1:
        raise ValidationError("interval must be >= 1")
    if day_of_month is not None and not 1 <= int(day_of_month) <= 31:
        raise ValidationError("day_of_month must be between 1 and 31")
    if day_of_week is not None and not 0 <= int(day_of_week) <= 6:
        raise ValidationError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    return RecurrenceRule(frequency=freq, interval=int(interval), day_of_month=day_of_month, day_of_week=day_of_week)


def _check_refs(
    db: Session,
    *,
    property_id: Optional[int] = None,
    unit_id: Optional[int] = None,
    assigned_to_id: Optional[int] = None,
    template_id: Optional[int] = None,
) -> None:
    if property_id is not None and db.get(Property, int(property_id)) is None:
        raise NotFoundError("property not found")
    if unit_id is not None:
        unit = db.get(Unit, int(unit_id))
        if unit is None or (property_id is not None and unit.property_id != int(property_id)):
            raise ValidationError("unit does not belong to property")
    if assigned_to_id is not None and db.get(AppUser, int(assigned_to_id)) is None:
        raise ValidationError("invalid assigned_to_id")
    if template_id is not None and db.get(InspectionTemplate, int(template_id)) is None:
        raise ValidationError("invalid template_id")


def create_schedule(
    db: Session,
    *,
    title: str,
    property_id: int,
    frequency: str,
    start_date: datetime,
    type: str = "ROUTINE",
    interval: int = 1,
    day_of_month: Optional[int] = None,
    day_of_week: Optional[int] = None,
    end_date: Optional[datetime] = None,
    unit_id: Optional[int] = None,
    assigned_to_id: Optional[int] = None,
    template_id: Optional[int] = None,
) -> RecurringInspection:
    """New schedules start with next_due_date = start_date."""
    rule = validate_rule(frequency=frequency, interval=interval, day_of_month=day_of_month, day_of_week=day_of_week)
    kind = (type or "").strip().upper()
    if kind not in INSPECTION_TYPES:
        raise ValidationError(f"type must be one of {', '.join(INSPECTION_TYPES)}")
    if end_date is not None and end_date < start_date:
        raise ValidationError("end_date must not be before start_date")
    _check_refs(db, property_id=property_id, unit_id=unit_id, assigned_to_id=assigned_to_id, template_id=template_id)

    now = _utcnow()
    row = RecurringInspection(
        title=title.strip(),
        type=kind,
        property_id=int(property_id),
        unit_id=unit_id,
        assigned_to_id=assigned_to_id,
        template_id=template_id,
        frequency=rule.frequency,
        interval=rule.interval,
        day_of_month=rule.day_of_month,
        day_of_week=rule.day_of_week,
        start_date=start_date,
        end_date=end_date,
        next_due_date=start_date,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    with unit_of_work(db) as tx:
        tx.add(row)
    log.info("recurring schedule created", extra={"recurring_inspection_id": row.id, "property_id": row.property_id})
    return row


def list_schedules(
    db: Session,
    *,
    property_id: Optional[int] = None,
    active: Optional[bool] = None,
    limit: int = 200,
) -> list[RecurringInspection]:
    q = select(RecurringInspection)
    if property_id is not None:
        q = q.where(RecurringInspection.property_id == int(property_id))
    if active is not None:
        q = q.where(RecurringInspection.is_active.is_(bool(active)))
    q = q.order_by(RecurringInspection.next_due_date.asc(), RecurringInspection.id.asc()).limit(int(limit))
    return list(db.scalars(q).all())


def update_schedule(db: Session, schedule_id: int, changes: dict[str, Any]) -> RecurringInspection:
    """
    Partial update of the mutable fields. Cadence is fixed once created;
    make a new schedule to change it.
    """
    row = must_get_schedule(db, schedule_id)
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"cannot update: {', '.join(sorted(unknown))}")

    if "title" in changes and not (changes["title"] or "").strip():
        raise ValidationError("title must not be empty")
    _check_refs(db, assigned_to_id=changes.get("assigned_to_id"), template_id=changes.get("template_id"))
    end_date = changes.get("end_date")
    if end_date is not None and end_date < row.start_date:
        raise ValidationError("end_date must not be before start_date")

    with unit_of_work(db):
        for k, v in changes.items():
            setattr(row, k, v.strip() if k == "title" else v)
        row.updated_at = _utcnow()
    return row


def deactivate_schedule(db: Session, schedule_id: int) -> RecurringInspection:
    row = must_get_schedule(db, schedule_id)
    if row.is_active:
        with unit_of_work(db):
            row.is_active = False
            row.updated_at = _utcnow()
        log.info("recurring schedule deactivated", extra={"recurring_inspection_id": row.id})
    return row


def _preview_count(count: Optional[int]) -> int:
    cap = int(settings.recurrence_preview_max)
    if count is None:
        return min(5, cap)
    return max(1, min(int(count), cap))


def preview_schedule(db: Session, schedule_id: int, *, count: Optional[int] = None) -> list[datetime]:
    row = must_get_schedule(db, schedule_id)
    if not row.is_active:
        return []
    rule = RecurrenceRule(
        frequency=row.frequency, interval=row.interval, day_of_month=row.day_of_month, day_of_week=row.day_of_week
    )
    return upcoming_occurrences(rule, row.next_due_date, end_date=row.end_date, count=_preview_count(count))


def preview_rule(
    *,
    frequency: str,
    interval: int,
    start_date: datetime,
    day_of_month: Optional[int] = None,
    day_of_week: Optional[int] = None,
    end_date: Optional[datetime] = None,
    count: Optional[int] = None,
) -> list[datetime]:
    rule = validate_rule(frequency=frequency, interval=interval, day_of_month=day_of_month, day_of_week=day_of_week)
    return upcoming_occurrences(rule, start_date, end_date=end_date, count=_preview_count(count))
