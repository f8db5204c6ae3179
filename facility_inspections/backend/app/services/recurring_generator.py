# backend/app/services/recurring_generator.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..config import settings
from ..db import SessionLocal, unit_of_work
from ..domain import audit
from ..domain.inspection_status import ITEM_PENDING, SCHEDULED
from ..domain.recurrence import next_due_date
from ..models import (
    Inspection,
    InspectionChecklistItem,
    InspectionRoom,
    InspectionTemplate,
    InspectionTemplateRoom,
    RecurringInspection,
)

log = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    generated_count: int = 0
    processed: int = 0
    skipped_existing: int = 0
    deactivated: int = 0
    failed: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def _utcnow() -> datetime:
    return datetime.utcnow()


def _due_schedule_ids(db: Session, *, now: datetime, horizon: datetime) -> list[int]:
    q = (
        select(RecurringInspection.id)
        .where(
            RecurringInspection.is_active.is_(True),
            RecurringInspection.next_due_date <= horizon,
            (RecurringInspection.end_date.is_(None))
            | (
                (RecurringInspection.end_date > now)
                & (RecurringInspection.next_due_date <= RecurringInspection.end_date)
            ),
        )
        .order_by(RecurringInspection.next_due_date.asc(), RecurringInspection.id.asc())
    )
    return [int(x) for x in db.scalars(q).all()]


def _expired_schedule_ids(db: Session, *, now: datetime) -> list[int]:
    q = select(RecurringInspection.id).where(
        RecurringInspection.is_active.is_(True),
        RecurringInspection.end_date.is_not(None),
        (RecurringInspection.end_date <= now) | (RecurringInspection.next_due_date > RecurringInspection.end_date),
    )
    return [int(x) for x in db.scalars(q).all()]


def _load_template(db: Session, template_id: Optional[int]) -> Optional[InspectionTemplate]:
    if template_id is None:
        return None
    return db.scalar(
        select(InspectionTemplate)
        .where(InspectionTemplate.id == int(template_id))
        .options(selectinload(InspectionTemplate.rooms).selectinload(InspectionTemplateRoom.checklist_items))
    )


def copy_template_rooms(tx: Session, *, inspection: Inspection, template: InspectionTemplate) -> int:
    """
    Deep-copy template rooms and checklist items onto an inspection, keeping
    their order. Items start PENDING. Returns the number of rooms copied.
    """
    n = 0
    for t_room in template.rooms:
        room = InspectionRoom(
            inspection_id=inspection.id,
            name=t_room.name,
            room_type=t_room.room_type,
            sort_order=t_room.sort_order,
        )
        tx.add(room)
        tx.flush()
        for t_item in t_room.checklist_items:
            tx.add(
                InspectionChecklistItem(
                    room_id=room.id,
                    description=t_item.description,
                    status=ITEM_PENDING,
                    sort_order=t_item.sort_order,
                )
            )
        n += 1
    return n


def _already_generated(tx: Session, schedule: RecurringInspection) -> bool:
    existing = tx.scalar(
        select(Inspection.id).where(
            Inspection.recurring_inspection_id == schedule.id,
            Inspection.scheduled_date == schedule.next_due_date,
        )
    )
    return existing is not None


def _materialize(tx: Session, schedule: RecurringInspection, *, now: datetime) -> Inspection:
    insp = Inspection(
        title=schedule.title,
        type=schedule.type,
        status=SCHEDULED,
        property_id=schedule.property_id,
        unit_id=schedule.unit_id,
        assigned_to_id=schedule.assigned_to_id,
        scheduled_date=schedule.next_due_date,
        template_id=schedule.template_id,
        recurring_inspection_id=schedule.id,
        created_at=now,
        updated_at=now,
    )
    tx.add(insp)
    tx.flush()

    template = _load_template(tx, schedule.template_id)
    rooms = copy_template_rooms(tx, inspection=insp, template=template) if template else 0

    audit.audit_write(
        tx,
        inspection_id=insp.id,
        user_id=None,
        action=audit.CREATED,
        changes={
            "source": "recurring_schedule",
            "recurring_inspection_id": schedule.id,
            "scheduled_date": schedule.next_due_date.isoformat(),
            "template_id": schedule.template_id,
            "rooms_copied": rooms,
        },
    )
    return insp


def _advance(schedule: RecurringInspection, *, now: datetime) -> bool:
    """Move next_due_date one step. Returns True when the schedule was deactivated."""
    new_next = next_due_date(
        schedule.frequency,
        schedule.interval,
        schedule.next_due_date,
        day_of_month=schedule.day_of_month,
        day_of_week=schedule.day_of_week,
    )
    schedule.next_due_date = new_next
    schedule.last_generated_date = now
    schedule.updated_at = now
    if schedule.end_date is not None and new_next > schedule.end_date:
        schedule.is_active = False
        return True
    return False


def process_schedule(db: Session, schedule_id: int, *, now: datetime, result: GenerationResult) -> None:
    """One schedule, one unit of work. Counters move only after commit."""
    generated = skipped = deactivated = False
    with unit_of_work(db) as tx:
        schedule = tx.get(RecurringInspection, schedule_id)
        if schedule is None or not schedule.is_active:
            return
        due = schedule.next_due_date

        if _already_generated(tx, schedule):
            skipped = True
        else:
            _materialize(tx, schedule, now=now)
            generated = True

        deactivated = _advance(schedule, now=now)

    extra = {"recurring_inspection_id": schedule_id}
    if skipped:
        result.skipped_existing += 1
        log.info("recurring inspection already generated for %s", due.isoformat(), extra=extra)
    if generated:
        result.generated_count += 1
        log.info("generated recurring inspection for %s", due.isoformat(), extra=extra)
    if deactivated:
        result.deactivated += 1
        log.info("recurring schedule reached its end date", extra=extra)


def deactivate_expired(db: Session, *, now: datetime) -> int:
    ids = _expired_schedule_ids(db, now=now)
    if not ids:
        return 0
    with unit_of_work(db) as tx:
        for sid in ids:
            schedule = tx.get(RecurringInspection, sid)
            if schedule is None:
                continue
            schedule.is_active = False
            schedule.updated_at = now
    log.info("deactivated %d expired recurring schedule(s)", len(ids))
    return len(ids)


def generate_recurring_inspections(db: Session, now: Optional[datetime] = None) -> GenerationResult:
    """
    Materialize every recurring schedule due within the lookahead window.

    - Each schedule is its own unit of work; one failure is logged and rolled
      back without affecting the others.
    - Idempotent: a schedule whose current due date was already materialized
      is advanced without creating a second inspection.
    - Schedules that ran past their end date are deactivated.
    """
    now = now or _utcnow()
    horizon = now + timedelta(days=int(settings.recurrence_lookahead_days))
    result = GenerationResult()

    ids = _due_schedule_ids(db, now=now, horizon=horizon)
    # release the read before per-schedule transactions start
    db.commit()

    for sid in ids:
        result.processed += 1
        try:
            process_schedule(db, sid, now=now, result=result)
        except Exception:
            result.failed += 1
            log.exception("failed to generate recurring inspection", extra={"recurring_inspection_id": sid})

    try:
        result.deactivated += deactivate_expired(db, now=now)
    except Exception:
        log.exception("failed to deactivate expired recurring schedules")

    log.info(
        "recurring generation done generated=%d processed=%d skipped=%d deactivated=%d failed=%d",
        result.generated_count,
        result.processed,
        result.skipped_existing,
        result.deactivated,
        result.failed,
    )
    return result


def trigger_recurring_inspection_generation(now: Optional[datetime] = None) -> GenerationResult:
    """Manual run (HTTP, CLI, worker) with its own session."""
    db = SessionLocal()
    try:
        return generate_recurring_inspections(db, now=now)
    finally:
        db.close()
