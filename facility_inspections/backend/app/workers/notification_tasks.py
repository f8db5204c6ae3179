# backend/app/workers/notification_tasks.py
from __future__ import annotations

import json
import logging
import random
from datetime import datetime
from typing import Any

from ..config import settings
from ..db import SessionLocal
from ..models import Notification
from .celery_app import DELIVER_NOTIFICATION_TASK, celery_app

log = logging.getLogger(__name__)


def _backoff_seconds(retries: int) -> int:
    """Exponential backoff with +/- 20% jitter, capped."""
    base = int(settings.notification_retry_base_seconds or 5)
    cap = int(settings.notification_retry_max_seconds or 120)
    delay = min(cap, base * (2 ** max(0, int(retries))))
    jitter = int(delay * 0.2)
    if jitter > 0:
        delay = max(1, delay + random.randint(-jitter, jitter))
    return delay


def store_notification(notice: dict[str, Any]) -> int:
    """Write one in-app Notification row in its own session. Returns the row id."""
    db = SessionLocal()
    try:
        row = Notification(
            user_id=int(notice["user_id"]),
            type=str(notice["type"]),
            title=str(notice["title"]),
            message=str(notice["message"]),
            entity_type=notice.get("entity_type"),
            entity_id=notice.get("entity_id"),
            data_json=json.dumps(notice.get("data") or {}, default=str),
            created_at=datetime.utcnow(),
        )
        db.add(row)
        db.commit()
        return int(row.id)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@celery_app.task(
    bind=True,
    max_retries=settings.notification_max_retries,
    name=DELIVER_NOTIFICATION_TASK,
)
def deliver_notification(self, notice: dict) -> dict:
    """
    Delivers one notice to one recipient. Enqueued after the lifecycle
    transaction commits; retried with backoff, never reported back to the caller.
    """
    try:
        notification_id = store_notification(notice)
    except Exception as exc:
        log.exception(
            "notification delivery failed (attempt %d)",
            self.request.retries + 1,
            extra={"user_id": notice.get("user_id"), "task_id": self.request.id},
        )
        raise self.retry(exc=exc, countdown=_backoff_seconds(self.request.retries))

    return {"ok": True, "notification_id": notification_id}
