# backend/tests/test_overdue_inspections.py
from __future__ import annotations

from datetime import datetime, timedelta

from app.db import SessionLocal
from app.models import Inspection
from app.services.overdue_inspections import process_overdue_inspections

NOW = datetime(2025, 6, 10, 8, 0)


def test_overdue_scheduled_inspections_notify_assignee_and_manager(world, inspection_factory, sink):
    late = inspection_factory(status="SCHEDULED", scheduled_date=NOW - timedelta(days=3))
    later = inspection_factory(status="SCHEDULED", scheduled_date=NOW - timedelta(days=1), unassigned=True)
    # not overdue: future, already started, finished
    inspection_factory(status="SCHEDULED", scheduled_date=NOW + timedelta(hours=1))
    inspection_factory(status="IN_PROGRESS", scheduled_date=NOW - timedelta(days=5))
    inspection_factory(status="COMPLETED", scheduled_date=NOW - timedelta(days=5))

    db = SessionLocal()
    try:
        res = process_overdue_inspections(db, now=NOW)
    finally:
        db.close()

    assert res.as_dict() == {"processed": 2, "technician_notices": 1, "manager_digests": 1}

    overdue = [n for n in sink.delivered if n.type == "INSPECTION_OVERDUE"]
    assert [(n.user_id, n.entity_id) for n in overdue] == [(world.tech_id, str(late))]
    assert overdue[0].message == "Overdue inspection: Quarterly Walkthrough at Maple Court"
    assert overdue[0].data["days_overdue"] == 3
    assert overdue[0].data["unit_number"] == "2B"

    digests = [n for n in sink.delivered if n.type == "OVERDUE_INSPECTIONS_DIGEST"]
    assert [n.user_id for n in digests] == [world.manager_id]
    assert [i["inspection_id"] for i in digests[0].data["inspections"]] == [late, later]
    assert digests[0].message == "2 inspections are overdue"


def test_sweep_does_not_change_inspections(world, inspection_factory):
    iid = inspection_factory(status="SCHEDULED", scheduled_date=NOW - timedelta(days=2))
    db = SessionLocal()
    try:
        process_overdue_inspections(db, now=NOW)
        process_overdue_inspections(db, now=NOW)
        assert db.get(Inspection, iid).status == "SCHEDULED"
    finally:
        db.close()


def test_nothing_overdue_sends_nothing(world, inspection_factory, sink):
    inspection_factory(status="SCHEDULED", scheduled_date=NOW + timedelta(days=1))
    db = SessionLocal()
    try:
        res = process_overdue_inspections(db, now=NOW)
    finally:
        db.close()
    assert res.processed == 0
    assert sink.delivered == []


def test_overdue_task_and_beat_entry(world, inspection_factory, sink):
    from app.workers import overdue_tasks
    from app.workers.celery_app import celery_app

    inspection_factory(status="SCHEDULED", scheduled_date=datetime.utcnow() - timedelta(days=1))
    out = overdue_tasks.process_overdue_inspections()
    assert out["ok"] is True
    assert out["processed"] == 1
    assert {n.type for n in sink.delivered} == {"INSPECTION_OVERDUE", "OVERDUE_INSPECTIONS_DIGEST"}

    beat = celery_app.conf.beat_schedule["process-overdue-inspections-daily"]
    assert beat["task"] == overdue_tasks.process_overdue_inspections.name
    assert 8 in beat["schedule"].hour
