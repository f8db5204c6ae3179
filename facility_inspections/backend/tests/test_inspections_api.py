# backend/tests/test_inspections_api.py
from __future__ import annotations

from fastapi.testclient import TestClient

from app.db import SessionLocal
from app.main import create_app
from app.models import AppUser, Inspection

ROOMS = {"Kitchen": [("No leaks under sink", "FAILED")]}


def _client() -> TestClient:
    return TestClient(create_app())


def _as(email: str, role: str | None = None) -> dict[str, str]:
    h = {"X-User-Email": email}
    if role:
        h["X-User-Role"] = role
    return h


def test_health():
    r = _client().get("/api/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_missing_identity_is_401(world, inspection_factory):
    iid = inspection_factory()
    r = _client().get(f"/api/inspections/{iid}")
    assert r.status_code == 401


def test_dev_auth_provisions_unknown_user_with_role_hint(world, inspection_factory):
    iid = inspection_factory()
    r = _client().get(f"/api/inspections/{iid}", headers=_as("new.admin@t.local", "admin"))
    assert r.status_code == 200

    db = SessionLocal()
    try:
        u = db.query(AppUser).filter(AppUser.email == "new.admin@t.local").one()
        assert u.role == "ADMIN"
    finally:
        db.close()


def test_get_inspection_includes_rooms(world, inspection_factory):
    iid = inspection_factory(rooms=ROOMS)
    r = _client().get(f"/api/inspections/{iid}", headers=_as(world.tech_email))
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "IN_PROGRESS"
    assert body["rooms"][0]["checklist_items"][0]["status"] == "FAILED"
    assert body["tags"] == []


def test_complete_preview_then_real(world, inspection_factory):
    iid = inspection_factory(rooms=ROOMS)
    client = _client()
    payload = {"findings": "URGENT: no heat", "tags": ["winter"], "auto_create_jobs": True, "preview_only": True}

    pr = client.post(f"/api/inspections/{iid}/complete", json=payload, headers=_as(world.tech_email))
    assert pr.status_code == 200
    preview = pr.json()
    assert preview["preview"] is True
    assert preview["status"] == "PENDING_APPROVAL"
    assert [j["priority"] for j in preview["jobs"]] == ["URGENT"]

    payload["preview_only"] = False
    rr = client.post(f"/api/inspections/{iid}/complete", json=payload, headers=_as(world.tech_email))
    assert rr.status_code == 200
    real = rr.json()
    assert real["preview"] is False
    assert real["inspection"]["status"] == "PENDING_APPROVAL"
    assert real["inspection"]["tags"] == ["winter"]
    assert [j["title"] for j in real["jobs"]] == [j["title"] for j in preview["jobs"]]
    assert [r["title"] for r in real["recommendations"]] == [r["title"] for r in preview["recommendations"]]

    audit = client.get(f"/api/inspections/{iid}/audit", headers=_as(world.tech_email)).json()
    assert [a["action"] for a in audit] == ["COMPLETED", "JOB_CREATED", "RECOMMENDATION_CREATED"]
    assert audit[0]["changes"]["after"]["status"] == "PENDING_APPROVAL"


def test_complete_without_job_flag_creates_no_jobs(world, inspection_factory):
    iid = inspection_factory(rooms=ROOMS)
    r = _client().post(
        f"/api/inspections/{iid}/complete",
        json={"findings": "URGENT: no heat"},
        headers=_as(world.tech_email),
    )
    assert r.status_code == 200
    assert r.json()["jobs"] == []
    assert len(r.json()["recommendations"]) == 1


def test_approve_requires_manager_role(world, inspection_factory):
    iid = inspection_factory(status="PENDING_APPROVAL")
    client = _client()

    r = client.post(f"/api/inspections/{iid}/approve", headers=_as(world.tech_email))
    assert r.status_code == 403

    r = client.post(f"/api/inspections/{iid}/approve", headers=_as(world.manager_email))
    assert r.status_code == 200
    assert r.json()["status"] == "COMPLETED"
    assert r.json()["approved_by_id"] == world.manager_id


def test_approve_wrong_state_is_409(world, inspection_factory):
    iid = inspection_factory(status="IN_PROGRESS")
    r = _client().post(f"/api/inspections/{iid}/approve", headers=_as(world.manager_email))
    assert r.status_code == 409

    db = SessionLocal()
    try:
        assert db.get(Inspection, iid).status == "IN_PROGRESS"
    finally:
        db.close()


def test_reject_validation_and_reassignment(world, inspection_factory):
    iid = inspection_factory(status="PENDING_APPROVAL")
    client = _client()

    r = client.post(f"/api/inspections/{iid}/reject", json={}, headers=_as(world.manager_email))
    assert r.status_code == 422

    r = client.post(
        f"/api/inspections/{iid}/reject",
        json={"rejection_reason": "Missing photos", "reassign_to_id": 424242},
        headers=_as(world.manager_email),
    )
    assert r.status_code == 404

    r = client.post(
        f"/api/inspections/{iid}/reject",
        json={"rejection_reason": "Missing photos", "reassign_to_id": world.tech2_id},
        headers=_as(world.manager_email),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "IN_PROGRESS"
    assert body["assigned_to_id"] == world.tech2_id
    assert body["rejection_reason"] == "Missing photos"


def test_unknown_inspection_is_404(world):
    r = _client().post("/api/inspections/999/start", headers=_as(world.tech_email))
    assert r.status_code == 404


def test_start_cancel_and_signature_endpoints(world, inspection_factory):
    iid = inspection_factory(status="SCHEDULED", type="MOVE_OUT")
    client = _client()

    assert client.post(f"/api/inspections/{iid}/start", headers=_as(world.tech_email)).json()["status"] == "IN_PROGRESS"

    r = client.post(
        f"/api/inspections/{iid}/signature",
        json={"signature_url": "https://files.local/sig.png"},
        headers=_as(world.tech_email),
    )
    assert r.status_code == 200
    assert r.json()["tenant_signature"] == "https://files.local/sig.png"

    r = client.post(f"/api/inspections/{iid}/cancel", json={"reason": "unit sold"}, headers=_as(world.manager_email))
    assert r.status_code == 200
    assert r.json()["status"] == "CANCELLED"

    r = client.post(f"/api/inspections/{iid}/cancel", headers=_as(world.manager_email))
    assert r.status_code == 409


def test_signature_on_routine_inspection_is_400(world, inspection_factory):
    iid = inspection_factory(type="ROUTINE")
    r = _client().post(
        f"/api/inspections/{iid}/signature",
        json={"signature_url": "https://files.local/sig.png"},
        headers=_as(world.tech_email),
    )
    assert r.status_code == 400


def test_request_id_is_echoed_or_minted():
    client = _client()
    r = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"

    minted = client.get("/api/health").headers["X-Request-ID"]
    assert minted and minted != "abc-123"
