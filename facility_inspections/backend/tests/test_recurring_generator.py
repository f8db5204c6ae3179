# backend/tests/test_recurring_generator.py
from __future__ import annotations

import json
from datetime import datetime, timedelta

from sqlalchemy import select

from app.db import SessionLocal
from app.domain import audit
from app.models import (
    Inspection,
    InspectionTemplate,
    InspectionTemplateChecklistItem,
    InspectionTemplateRoom,
    RecurringInspection,
)
from app.services import recurring_generator
from app.services.recurring_generator import generate_recurring_inspections

TODAY = datetime(2025, 6, 10, 9, 0)


def _mk_schedule(world, **kw) -> int:
    db = SessionLocal()
    try:
        fields = dict(
            title="Daily boiler check",
            type="ROUTINE",
            property_id=world.property_id,
            unit_id=world.unit_id,
            assigned_to_id=world.tech_id,
            frequency="DAILY",
            interval=1,
            start_date=TODAY,
            next_due_date=TODAY,
            is_active=True,
        )
        fields.update(kw)
        row = RecurringInspection(**fields)
        db.add(row)
        db.commit()
        return int(row.id)
    finally:
        db.close()


def _mk_template(world) -> int:
    db = SessionLocal()
    try:
        t = InspectionTemplate(name="Boiler room", type="ROUTINE", property_id=world.property_id)
        db.add(t)
        db.flush()
        # inserted out of order on purpose; sort_order drives the copy
        second = InspectionTemplateRoom(template_id=t.id, name="Mechanical", sort_order=1)
        first = InspectionTemplateRoom(template_id=t.id, name="Entry", sort_order=0)
        db.add_all([second, first])
        db.flush()
        db.add_all(
            [
                InspectionTemplateChecklistItem(room_id=second.id, description="Pressure gauge in range", sort_order=1),
                InspectionTemplateChecklistItem(room_id=second.id, description="No leaks at valves", sort_order=0),
                InspectionTemplateChecklistItem(room_id=first.id, description="Door closes", sort_order=0),
            ]
        )
        db.commit()
        return int(t.id)
    finally:
        db.close()


def _inspections_for(db, schedule_id: int) -> list[Inspection]:
    return list(
        db.scalars(
            select(Inspection)
            .where(Inspection.recurring_inspection_id == schedule_id)
            .order_by(Inspection.scheduled_date)
        ).all()
    )


def test_daily_schedule_today_until_tomorrow(world):
    sid = _mk_schedule(world, end_date=TODAY + timedelta(days=1))

    db = SessionLocal()
    try:
        res = generate_recurring_inspections(db, now=TODAY)
        assert res.generated_count == 1
        assert res.failed == 0

        sched = db.get(RecurringInspection, sid)
        assert sched.is_active is True
        assert sched.next_due_date == TODAY + timedelta(days=1)
        assert sched.last_generated_date == TODAY

        insps = _inspections_for(db, sid)
        assert [i.scheduled_date for i in insps] == [TODAY]
        assert insps[0].status == "SCHEDULED"
        assert insps[0].assigned_to_id == world.tech_id
        assert insps[0].title == "Daily boiler check"
    finally:
        db.close()


def test_schedule_already_past_end_date_deactivates_without_instance(world):
    # next due already beyond the end date: terminal, nothing materialized
    sid = _mk_schedule(
        world,
        next_due_date=TODAY + timedelta(days=2),
        end_date=TODAY + timedelta(days=1),
    )
    db = SessionLocal()
    try:
        res = generate_recurring_inspections(db, now=TODAY + timedelta(days=1))
        assert res.generated_count == 0
        assert res.deactivated == 1
        assert db.get(RecurringInspection, sid).is_active is False
        assert _inspections_for(db, sid) == []

        # stays terminal
        res2 = generate_recurring_inspections(db, now=TODAY + timedelta(days=2))
        assert res2.generated_count == 0 and res2.processed == 0
    finally:
        db.close()


def test_last_occurrence_deactivates_after_materializing(world):
    sid = _mk_schedule(world, end_date=TODAY)
    db = SessionLocal()
    try:
        res = generate_recurring_inspections(db, now=TODAY - timedelta(hours=1))
        assert res.generated_count == 1
        assert res.deactivated == 1
        sched = db.get(RecurringInspection, sid)
        assert sched.is_active is False
        # next date is still persisted
        assert sched.next_due_date == TODAY + timedelta(days=1)
    finally:
        db.close()


def test_end_date_equal_to_now_is_no_longer_active(world):
    sid = _mk_schedule(world, end_date=TODAY)
    db = SessionLocal()
    try:
        res = generate_recurring_inspections(db, now=TODAY)
        assert res.processed == 0
        assert res.generated_count == 0
        assert res.deactivated == 1
        assert db.get(RecurringInspection, sid).is_active is False
        assert _inspections_for(db, sid) == []
    finally:
        db.close()


def test_rerun_is_idempotent(world):
    sid = _mk_schedule(world, frequency="MONTHLY")
    db = SessionLocal()
    try:
        first = generate_recurring_inspections(db, now=TODAY)
        second = generate_recurring_inspections(db, now=TODAY)
        assert first.generated_count == 1
        assert second.generated_count == 0
        assert second.processed == 0
        assert [i.scheduled_date for i in _inspections_for(db, sid)] == [TODAY]
        assert db.get(RecurringInspection, sid).next_due_date == datetime(2025, 7, 10, 9, 0)
    finally:
        db.close()


def test_weekly_date_inside_lookahead_is_materialized_on_next_run(world):
    sid = _mk_schedule(world, frequency="WEEKLY")
    db = SessionLocal()
    try:
        generate_recurring_inspections(db, now=TODAY)
        # next weekly date sits exactly on the 7-day horizon
        assert generate_recurring_inspections(db, now=TODAY).generated_count == 1
        assert generate_recurring_inspections(db, now=TODAY).generated_count == 0
        assert [i.scheduled_date for i in _inspections_for(db, sid)] == [TODAY, TODAY + timedelta(days=7)]
    finally:
        db.close()


def test_existing_instance_is_skipped_but_schedule_advances(world):
    sid = _mk_schedule(world)
    db = SessionLocal()
    try:
        db.add(
            Inspection(
                title="Daily boiler check",
                property_id=world.property_id,
                scheduled_date=TODAY,
                recurring_inspection_id=sid,
                created_at=TODAY,
                updated_at=TODAY,
            )
        )
        db.commit()

        res = generate_recurring_inspections(db, now=TODAY - timedelta(days=7))
        assert res.skipped_existing == 1
        assert res.generated_count == 0
        assert db.get(RecurringInspection, sid).next_due_date == TODAY + timedelta(days=1)
        assert len(_inspections_for(db, sid)) == 1
    finally:
        db.close()


def test_lookahead_window_bounds_selection(world):
    sid = _mk_schedule(world, next_due_date=TODAY + timedelta(days=8))
    db = SessionLocal()
    try:
        res = generate_recurring_inspections(db, now=TODAY)
        assert res.processed == 0
        assert _inspections_for(db, sid) == []
    finally:
        db.close()


def test_template_rooms_and_items_are_copied_in_order(world):
    tid = _mk_template(world)
    sid = _mk_schedule(world, template_id=tid)
    db = SessionLocal()
    try:
        generate_recurring_inspections(db, now=TODAY)
        insp = _inspections_for(db, sid)[0]
        assert insp.template_id == tid
        assert [r.name for r in insp.rooms] == ["Entry", "Mechanical"]
        assert [i.description for i in insp.rooms[1].checklist_items] == [
            "No leaks at valves",
            "Pressure gauge in range",
        ]
        assert {i.status for r in insp.rooms for i in r.checklist_items} == {"PENDING"}

        entry = audit.list_audit(db, inspection_id=insp.id)
        assert [(e.action, e.user_id) for e in entry] == [("CREATED", None)]
        assert json.loads(entry[0].changes_json)["rooms_copied"] == 2
    finally:
        db.close()


def test_one_failing_schedule_does_not_stop_others(world, monkeypatch):
    bad = _mk_schedule(world, title="Bad one")
    good = _mk_schedule(world, title="Good one")

    real = recurring_generator._materialize

    def flaky(tx, schedule, *, now):
        if schedule.title == "Bad one":
            raise RuntimeError("insert failed")
        return real(tx, schedule, now=now)

    monkeypatch.setattr(recurring_generator, "_materialize", flaky)
    db = SessionLocal()
    try:
        res = generate_recurring_inspections(db, now=TODAY)
        assert res.processed == 2
        assert res.failed == 1
        assert res.generated_count == 1

        assert _inspections_for(db, bad) == []
        assert db.get(RecurringInspection, bad).next_due_date == TODAY
        assert db.get(RecurringInspection, bad).last_generated_date is None
        assert len(_inspections_for(db, good)) == 1
    finally:
        db.close()


def test_inactive_schedules_are_ignored(world):
    sid = _mk_schedule(world, is_active=False)
    db = SessionLocal()
    try:
        res = generate_recurring_inspections(db, now=TODAY)
        assert res.processed == 0
        assert _inspections_for(db, sid) == []
    finally:
        db.close()


def test_celery_task_runs_generator(world):
    from app.workers import recurring_tasks
    from app.workers.celery_app import celery_app

    sid = _mk_schedule(world, next_due_date=datetime.utcnow())
    # direct call runs in-process; no broker involved
    out = recurring_tasks.generate_recurring_inspections()
    assert out["ok"] is True
    assert out["generated_count"] == 1

    beat = celery_app.conf.beat_schedule["generate-recurring-inspections-daily"]
    assert beat["task"] == recurring_tasks.generate_recurring_inspections.name
    assert 2 in beat["schedule"].hour

    db = SessionLocal()
    try:
        assert len(_inspections_for(db, sid)) == 1
    finally:
        db.close()
