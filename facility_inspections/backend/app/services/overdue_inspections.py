# backend/app/services/overdue_inspections.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..db import SessionLocal
from ..domain.inspection_status import SCHEDULED
from ..models import Inspection, Unit
from .notifications import (
    InspectionOverdue,
    NotificationDispatcher,
    NotificationEvent,
    OverdueDigest,
    get_dispatcher,
)

log = logging.getLogger(__name__)


@dataclass
class OverdueResult:
    processed: int = 0
    technician_notices: int = 0
    manager_digests: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def _utcnow() -> datetime:
    return datetime.utcnow()


def find_overdue_inspections(db: Session, *, now: datetime) -> list[Inspection]:
    """SCHEDULED inspections whose scheduled date has passed. Started ones are not overdue."""
    q = (
        select(Inspection)
        .where(Inspection.status == SCHEDULED, Inspection.scheduled_date < now)
        .options(selectinload(Inspection.property))
        .order_by(Inspection.scheduled_date.asc(), Inspection.id.asc())
    )
    return list(db.scalars(q).all())


def _days_overdue(scheduled: datetime, now: datetime) -> int:
    return int(round((now - scheduled).total_seconds() / 86400))


def process_overdue_inspections(
    db: Session,
    now: Optional[datetime] = None,
    *,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> OverdueResult:
    """
    Notify each assignee of their overdue inspection and send every property
    manager one digest of the overdue inspections on their properties.

    Read-only on inspections; runs daily, so a still-overdue inspection is
    reported again on the next run.
    """
    now = now or _utcnow()
    rows = find_overdue_inspections(db, now=now)
    if not rows:
        log.debug("no overdue inspections")
        db.commit()
        return OverdueResult()

    unit_numbers: dict[int, str] = {}
    unit_ids = {r.unit_id for r in rows if r.unit_id is not None}
    if unit_ids:
        for u in db.scalars(select(Unit).where(Unit.id.in_(unit_ids))).all():
            unit_numbers[int(u.id)] = u.unit_number

    events: list[NotificationEvent] = []
    by_manager: dict[int, list[dict[str, Any]]] = {}
    technician_notices = 0

    for insp in rows:
        prop = insp.property
        prop_name = prop.name if prop else ""
        days = _days_overdue(insp.scheduled_date, now)
        unit_number = unit_numbers.get(int(insp.unit_id)) if insp.unit_id is not None else None

        if insp.assigned_to_id is not None:
            technician_notices += 1
            events.append(
                InspectionOverdue(
                    inspection_id=insp.id,
                    inspection_title=insp.title,
                    inspection_type=insp.type,
                    property_name=prop_name,
                    scheduled_date=insp.scheduled_date,
                    days_overdue=days,
                    assignee_id=insp.assigned_to_id,
                    unit_number=unit_number,
                )
            )

        if prop is not None and prop.manager_id is not None:
            by_manager.setdefault(int(prop.manager_id), []).append(
                {
                    "inspection_id": insp.id,
                    "title": insp.title,
                    "property_name": prop_name,
                    "unit_number": unit_number,
                    "scheduled_date": insp.scheduled_date.isoformat(),
                    "days_overdue": days,
                    "assigned_to_id": insp.assigned_to_id,
                }
            )

    events.extend(OverdueDigest(manager_id=mid, inspections=tuple(items)) for mid, items in by_manager.items())

    # end the read transaction before handing off
    db.commit()
    try:
        (dispatcher or get_dispatcher()).publish(events)
    except Exception:
        log.exception("overdue notification dispatch failed")

    result = OverdueResult(
        processed=len(rows),
        technician_notices=technician_notices,
        manager_digests=len(by_manager),
    )
    log.info(
        "overdue sweep done processed=%d technician_notices=%d manager_digests=%d",
        result.processed,
        result.technician_notices,
        result.manager_digests,
    )
    return result


def trigger_overdue_sweep(now: Optional[datetime] = None) -> OverdueResult:
    """Manual run (CLI) with its own session."""
    db = SessionLocal()
    try:
        return process_overdue_inspections(db, now=now)
    finally:
        db.close()
