# backend/app/workers/overdue_tasks.py
from __future__ import annotations

import logging

from ..db import SessionLocal
from ..services.overdue_inspections import process_overdue_inspections as run_sweep
from .celery_app import OVERDUE_TASK, celery_app

log = logging.getLogger(__name__)


@celery_app.task(bind=True, name=OVERDUE_TASK)
def process_overdue_inspections(self) -> dict:
    """Daily overdue sweep; notices go out through the notifications queue."""
    db = SessionLocal()
    try:
        result = run_sweep(db)
        log.info("overdue sweep task finished", extra={"task_id": self.request.id})
        return {"ok": True, **result.as_dict()}
    finally:
        db.close()
