# backend/app/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.domain.recurrence import WEEKLY
from app.models import (
    AppUser,
    InspectionTemplate,
    InspectionTemplateChecklistItem,
    InspectionTemplateRoom,
    Property,
    PropertyOwnership,
    RecurringInspection,
    Unit,
)

DEMO_ROOMS = {
    "Kitchen": ["Smoke detector working", "No leaks under sink", "GFCI outlets trip and reset"],
    "Bathroom": ["Exhaust fan working", "No visible mold"],
    "Exterior": ["Handrails secure", "Walkways clear of trip hazards"],
}


@dataclass(frozen=True)
class SeedResult:
    manager_email: str
    technician_email: str
    owner_email: str
    property_id: int
    template_id: int
    recurring_inspection_id: Optional[int]


def _get_or_create_user(db: Session, email: str, first_name: str, role: str) -> AppUser:
    row = db.query(AppUser).filter(AppUser.email == email).one_or_none()
    if row:
        return row
    row = AppUser(email=email, first_name=first_name, last_name="Demo", role=role)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _get_or_create_property(db: Session, name: str, manager_id: int) -> Property:
    row = db.query(Property).filter(Property.name == name).one_or_none()
    if row:
        return row
    row = Property(name=name, address="1 Demo Way", manager_id=manager_id)
    db.add(row)
    db.commit()
    db.refresh(row)
    db.add(Unit(property_id=row.id, unit_number="101"))
    db.commit()
    return row


def _ensure_ownership(db: Session, property_id: int, owner_id: int) -> None:
    existing = db.query(PropertyOwnership).filter(
        PropertyOwnership.property_id == int(property_id),
        PropertyOwnership.owner_id == int(owner_id),
    ).one_or_none()
    if existing:
        return
    db.add(PropertyOwnership(property_id=int(property_id), owner_id=int(owner_id), start_date=datetime.utcnow()))
    db.commit()


def _get_or_create_template(db: Session, property_id: int) -> InspectionTemplate:
    name = "Routine walkthrough"
    row = db.query(InspectionTemplate).filter(InspectionTemplate.name == name).one_or_none()
    if row:
        return row
    row = InspectionTemplate(name=name, type="ROUTINE", property_id=property_id)
    db.add(row)
    db.flush()
    for r_order, (room_name, items) in enumerate(DEMO_ROOMS.items()):
        room = InspectionTemplateRoom(template_id=row.id, name=room_name, sort_order=r_order)
        db.add(room)
        db.flush()
        for i_order, desc in enumerate(items):
            db.add(InspectionTemplateChecklistItem(room_id=room.id, description=desc, sort_order=i_order))
    db.commit()
    db.refresh(row)
    return row


def seed_demo(
    *,
    manager_email: str = "manager@demo.local",
    technician_email: str = "tech@demo.local",
    owner_email: str = "owner@demo.local",
    create_schedule: bool = True,
) -> SeedResult:
    db = SessionLocal()
    try:
        manager = _get_or_create_user(db, manager_email, "Morgan", "PROPERTY_MANAGER")
        tech = _get_or_create_user(db, technician_email, "Taylor", "TECHNICIAN")
        owner = _get_or_create_user(db, owner_email, "Oakley", "OWNER")

        prop = _get_or_create_property(db, "Demo Apartments", manager_id=manager.id)
        _ensure_ownership(db, prop.id, owner.id)
        template = _get_or_create_template(db, prop.id)

        schedule_id: Optional[int] = None
        if create_schedule:
            existing = db.query(RecurringInspection).filter(
                RecurringInspection.property_id == prop.id,
                RecurringInspection.template_id == template.id,
            ).first()
            if existing is None:
                start = (datetime.utcnow() + timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0)
                existing = RecurringInspection(
                    title="Weekly walkthrough",
                    type="ROUTINE",
                    property_id=prop.id,
                    assigned_to_id=tech.id,
                    template_id=template.id,
                    frequency=WEEKLY,
                    interval=1,
                    start_date=start,
                    next_due_date=start,
                    is_active=True,
                )
                db.add(existing)
                db.commit()
                db.refresh(existing)
            schedule_id = int(existing.id)

        return SeedResult(
            manager_email=manager.email,
            technician_email=tech.email,
            owner_email=owner.email,
            property_id=int(prop.id),
            template_id=int(template.id),
            recurring_inspection_id=schedule_id,
        )
    finally:
        db.close()
