# backend/app/routers/recurring_inspections.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_approver
from ..db import get_db
from ..schemas import (
    GenerationOut,
    RecurrencePreviewIn,
    RecurrencePreviewOut,
    RecurringInspectionCreate,
    RecurringInspectionOut,
    RecurringInspectionUpdate,
)
from ..services import recurring_schedules
from ..services.recurring_generator import generate_recurring_inspections

router = APIRouter(prefix="/recurring-inspections", tags=["recurring-inspections"])


@router.get("", response_model=list[RecurringInspectionOut])
def list_recurring(
    property_id: Optional[int] = Query(default=None),
    active: Optional[bool] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return recurring_schedules.list_schedules(db, property_id=property_id, active=active, limit=limit)


@router.post("", response_model=RecurringInspectionOut, status_code=201)
def create_recurring(
    payload: RecurringInspectionCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_approver),
):
    return recurring_schedules.create_schedule(db, **payload.model_dump())


# Static paths before /{schedule_id}.
@router.post("/preview", response_model=RecurrencePreviewOut)
def preview_rule(
    payload: RecurrencePreviewIn,
    p: Principal = Depends(get_principal),
):
    return RecurrencePreviewOut(occurrences=recurring_schedules.preview_rule(**payload.model_dump()))


@router.post("/generate", response_model=GenerationOut)
def generate(
    db: Session = Depends(get_db),
    p: Principal = Depends(require_approver),
):
    return generate_recurring_inspections(db).as_dict()


@router.get("/{schedule_id}", response_model=RecurringInspectionOut)
def get_recurring(
    schedule_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return recurring_schedules.must_get_schedule(db, schedule_id)


@router.patch("/{schedule_id}", response_model=RecurringInspectionOut)
def update_recurring(
    schedule_id: int,
    payload: RecurringInspectionUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_approver),
):
    return recurring_schedules.update_schedule(db, schedule_id, payload.model_dump(exclude_unset=True))


@router.delete("/{schedule_id}", response_model=RecurringInspectionOut)
def deactivate_recurring(
    schedule_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_approver),
):
    return recurring_schedules.deactivate_schedule(db, schedule_id)


@router.get("/{schedule_id}/preview", response_model=RecurrencePreviewOut)
def preview_recurring(
    schedule_id: int,
    count: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return RecurrencePreviewOut(occurrences=recurring_schedules.preview_schedule(db, schedule_id, count=count))
