# backend/tests/test_recurring_schedules_api.py
from __future__ import annotations

from datetime import datetime, timedelta

from fastapi.testclient import TestClient

from app.main import create_app


def _client() -> TestClient:
    return TestClient(create_app())


def _schedule_body(world, **kw) -> dict:
    body = {
        "title": "Monthly smoke detector test",
        "property_id": world.property_id,
        "unit_id": world.unit_id,
        "assigned_to_id": world.tech_id,
        "frequency": "MONTHLY",
        "interval": 1,
        "day_of_month": 31,
        "start_date": "2024-01-31T10:00:00",
    }
    body.update(kw)
    return body


def test_create_get_list_and_preview(world):
    client = _client()
    pm = {"X-User-Email": world.manager_email}

    r = client.post("/api/recurring-inspections", json=_schedule_body(world), headers=pm)
    assert r.status_code == 201
    created = r.json()
    assert created["next_due_date"] == "2024-01-31T10:00:00"
    assert created["is_active"] is True
    sid = created["id"]

    assert client.get(f"/api/recurring-inspections/{sid}", headers=pm).json()["title"] == "Monthly smoke detector test"

    listed = client.get(f"/api/recurring-inspections?property_id={world.property_id}", headers=pm).json()
    assert [s["id"] for s in listed] == [sid]

    prev = client.get(f"/api/recurring-inspections/{sid}/preview?count=3", headers=pm).json()
    assert prev["occurrences"] == ["2024-01-31T10:00:00", "2024-02-29T10:00:00", "2024-03-31T10:00:00"]


def test_technician_cannot_create_schedule(world):
    r = _client().post(
        "/api/recurring-inspections", json=_schedule_body(world), headers={"X-User-Email": world.tech_email}
    )
    assert r.status_code == 403


def test_invalid_rules_are_rejected(world):
    client = _client()
    pm = {"X-User-Email": world.manager_email}

    r = client.post("/api/recurring-inspections", json=_schedule_body(world, frequency="HOURLY"), headers=pm)
    assert r.status_code == 400

    r = client.post("/api/recurring-inspections", json=_schedule_body(world, interval=0), headers=pm)
    assert r.status_code == 422

    r = client.post(
        "/api/recurring-inspections",
        json=_schedule_body(world, end_date="2023-12-31T00:00:00"),
        headers=pm,
    )
    assert r.status_code == 400

    r = client.post("/api/recurring-inspections", json=_schedule_body(world, property_id=9999), headers=pm)
    assert r.status_code == 404


def test_update_and_deactivate(world):
    client = _client()
    pm = {"X-User-Email": world.manager_email}
    sid = client.post("/api/recurring-inspections", json=_schedule_body(world), headers=pm).json()["id"]

    r = client.patch(
        f"/api/recurring-inspections/{sid}",
        json={"title": "Renamed", "assigned_to_id": world.tech2_id},
        headers=pm,
    )
    assert r.status_code == 200
    assert r.json()["title"] == "Renamed"
    assert r.json()["assigned_to_id"] == world.tech2_id
    assert r.json()["frequency"] == "MONTHLY"

    r = client.delete(f"/api/recurring-inspections/{sid}", headers=pm)
    assert r.status_code == 200
    assert r.json()["is_active"] is False

    assert client.get(f"/api/recurring-inspections/{sid}/preview", headers=pm).json()["occurrences"] == []
    assert client.get("/api/recurring-inspections?active=true", headers=pm).json() == []


def test_adhoc_preview_caps_count(world):
    r = _client().post(
        "/api/recurring-inspections/preview",
        json={"frequency": "DAILY", "start_date": "2024-01-01T00:00:00", "count": 500},
        headers={"X-User-Email": world.tech_email},
    )
    assert r.status_code == 200
    assert len(r.json()["occurrences"]) == 20


def test_manual_generate_endpoint(world):
    client = _client()
    pm = {"X-User-Email": world.manager_email}
    start = (datetime.utcnow() + timedelta(days=1)).replace(microsecond=0)
    client.post(
        "/api/recurring-inspections",
        json=_schedule_body(world, frequency="WEEKLY", day_of_month=None, start_date=start.isoformat()),
        headers=pm,
    )

    r = client.post("/api/recurring-inspections/generate", headers=pm)
    assert r.status_code == 200
    assert r.json() == {"generated_count": 1, "processed": 1, "skipped_existing": 0, "deactivated": 0, "failed": 0}

    again = client.post("/api/recurring-inspections/generate", headers=pm).json()
    assert again["generated_count"] == 0
