# facility_inspections/backend/app/workers/celery_app.py
from __future__ import annotations

import logging

from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_ready

from ..config import settings

log = logging.getLogger(__name__)

GENERATE_TASK = "app.workers.recurring_tasks.generate_recurring_inspections"
OVERDUE_TASK = "app.workers.overdue_tasks.process_overdue_inspections"
DELIVER_NOTIFICATION_TASK = "app.workers.notification_tasks.deliver_notification"

celery_app = Celery(
    "facility_inspections",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "app.workers.recurring_tasks",
        "app.workers.overdue_tasks",
        "app.workers.notification_tasks",
    ],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,   # one sweep per worker at a time
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone=settings.timezone,
)

celery_app.conf.task_routes = {
    "app.workers.recurring_tasks.*": {"queue": "recurring"},
    "app.workers.overdue_tasks.*": {"queue": "recurring"},
    "app.workers.notification_tasks.*": {"queue": "notifications"},
}

# Daily sweeps: generation at 02:00, overdue notices at 08:00 (defaults).
celery_app.conf.beat_schedule = {
    "generate-recurring-inspections-daily": {
        "task": GENERATE_TASK,
        "schedule": crontab(hour=settings.recurrence_cron_hour, minute=settings.recurrence_cron_minute),
    },
    "process-overdue-inspections-daily": {
        "task": OVERDUE_TASK,
        "schedule": crontab(hour=settings.overdue_cron_hour, minute=settings.overdue_cron_minute),
    },
}

STARTUP_TASKS = (GENERATE_TASK, OVERDUE_TASK)


@worker_ready.connect
def _run_once_on_startup(sender=None, **kwargs) -> None:
    """Catch up shortly after a worker boots instead of waiting for the next cron tick."""
    for name in STARTUP_TASKS:
        try:
            celery_app.send_task(name, countdown=int(settings.recurrence_startup_delay_seconds))
        except Exception:
            log.exception("failed to enqueue startup task %s", name)
