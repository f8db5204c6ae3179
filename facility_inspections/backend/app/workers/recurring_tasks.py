# backend/app/workers/recurring_tasks.py
from __future__ import annotations

import logging

from ..db import SessionLocal
from ..services.recurring_generator import generate_recurring_inspections as run_generation
from .celery_app import GENERATE_TASK, celery_app

log = logging.getLogger(__name__)


@celery_app.task(bind=True, name=GENERATE_TASK)
def generate_recurring_inspections(self) -> dict:
    """
    Scheduled sweep over recurring schedules.

    Safe to run concurrently or repeatedly: per-schedule idempotency plus the
    (recurring_inspection_id, scheduled_date) unique constraint keep it to one
    inspection per due date.
    """
    db = SessionLocal()
    try:
        result = run_generation(db)
        log.info("recurring generation task finished", extra={"task_id": self.request.id})
        return {"ok": True, **result.as_dict()}
    finally:
        db.close()
