# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Point the app at a throwaway database before app.config is imported.
_TMP = Path(tempfile.mkdtemp(prefix="facility_inspections_tests_"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AUTH_MODE", "dev")

from app.db import Base, SessionLocal, engine  # noqa: E402
from app import models  # noqa: E402,F401
from app.models import (  # noqa: E402
    AppUser,
    Inspection,
    InspectionChecklistItem,
    InspectionRoom,
    Property,
    PropertyOwnership,
    Unit,
)
from app.services.notifications import NotificationDispatcher, RecordingSink, set_dispatcher  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(autouse=True)
def sink():
    """Every test gets an in-memory notification sink unless it passes its own dispatcher."""
    rec = RecordingSink()
    set_dispatcher(NotificationDispatcher(rec))
    yield rec
    set_dispatcher(None)


@dataclass(frozen=True)
class World:
    manager_id: int
    manager_email: str
    tech_id: int
    tech_email: str
    tech2_id: int
    owner_id: int
    former_owner_id: int
    property_id: int
    unit_id: int


def _mk_user(db, email: str, first: str, role: str) -> AppUser:
    u = AppUser(email=email, first_name=first, last_name="Test", role=role)
    db.add(u)
    db.flush()
    return u


@pytest.fixture()
def world() -> World:
    db = SessionLocal()
    try:
        manager = _mk_user(db, "pm@t.local", "Pat", "PROPERTY_MANAGER")
        tech = _mk_user(db, "tech@t.local", "Terry", "TECHNICIAN")
        tech2 = _mk_user(db, "tech2@t.local", "Toni", "TECHNICIAN")
        owner = _mk_user(db, "owner@t.local", "Olive", "OWNER")
        former = _mk_user(db, "former@t.local", "Frank", "OWNER")

        prop = Property(name="Maple Court", address="12 Maple Ct", manager_id=manager.id)
        db.add(prop)
        db.flush()
        unit = Unit(property_id=prop.id, unit_number="2B")
        db.add(unit)

        now = datetime.utcnow()
        db.add(PropertyOwnership(property_id=prop.id, owner_id=owner.id, start_date=now - timedelta(days=365)))
        db.add(
            PropertyOwnership(
                property_id=prop.id,
                owner_id=former.id,
                start_date=now - timedelta(days=800),
                end_date=now - timedelta(days=400),
            )
        )
        db.commit()

        return World(
            manager_id=manager.id,
            manager_email=manager.email,
            tech_id=tech.id,
            tech_email=tech.email,
            tech2_id=tech2.id,
            owner_id=owner.id,
            former_owner_id=former.id,
            property_id=prop.id,
            unit_id=unit.id,
        )
    finally:
        db.close()


def make_inspection(
    world: World,
    *,
    status: str = "IN_PROGRESS",
    type: str = "ROUTINE",
    findings: str | None = None,
    rooms: dict[str, list[tuple[str, str]]] | None = None,
    scheduled_date: datetime | None = None,
    unassigned: bool = False,
) -> int:
    """rooms: {room name: [(item description, item status), ...]} in order."""
    db = SessionLocal()
    try:
        now = datetime.utcnow()
        insp = Inspection(
            title="Quarterly Walkthrough",
            type=type,
            status=status,
            property_id=world.property_id,
            unit_id=world.unit_id,
            assigned_to_id=None if unassigned else world.tech_id,
            findings=findings,
            scheduled_date=scheduled_date or now,
            created_at=now,
            updated_at=now,
        )
        db.add(insp)
        db.flush()
        for r_order, (room_name, items) in enumerate((rooms or {}).items()):
            room = InspectionRoom(inspection_id=insp.id, name=room_name, sort_order=r_order)
            db.add(room)
            db.flush()
            for i_order, (desc, item_status) in enumerate(items):
                db.add(InspectionChecklistItem(room_id=room.id, description=desc, status=item_status, sort_order=i_order))
        db.commit()
        return int(insp.id)
    finally:
        db.close()


@pytest.fixture()
def inspection_factory(world):
    def _make(**kw) -> int:
        return make_inspection(world, **kw)

    return _make
