# backend/app/routers/inspections.py
from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_approver, require_completer
from ..db import get_db
from ..domain.audit import list_audit
from ..schemas import (
    AuditLogOut,
    CompletionOut,
    CompletionPreviewOut,
    InspectionCancelIn,
    InspectionCompleteIn,
    InspectionDetailOut,
    InspectionOut,
    InspectionRejectIn,
    InspectionSignatureIn,
    JobOut,
    RecommendationOut,
)
from ..services.inspection_lifecycle import (
    CompletionPayload,
    CompletionPreview,
    add_signature,
    approve_inspection,
    cancel_inspection,
    complete_inspection,
    load_inspection,
    reject_inspection,
    start_inspection,
)

router = APIRouter(prefix="/inspections", tags=["inspections"])


@router.get("/{inspection_id}", response_model=InspectionDetailOut)
def get_inspection(
    inspection_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return load_inspection(db, inspection_id, with_rooms=True)


@router.get("/{inspection_id}/audit", response_model=list[AuditLogOut])
def get_inspection_audit(
    inspection_id: int,
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    load_inspection(db, inspection_id)
    rows = list_audit(db, inspection_id=inspection_id, limit=limit)
    return [
        AuditLogOut(
            id=r.id,
            inspection_id=r.inspection_id,
            user_id=r.user_id,
            action=r.action,
            changes=json.loads(r.changes_json) if r.changes_json else None,
            created_at=r.created_at,
        )
        for r in rows
    ]


@router.post("/{inspection_id}/start", response_model=InspectionOut)
def start(
    inspection_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_completer),
):
    return start_inspection(db, inspection_id=inspection_id, user_id=p.user_id)


@router.post("/{inspection_id}/complete")
def complete(
    inspection_id: int,
    payload: InspectionCompleteIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_completer),
):
    out = complete_inspection(
        db,
        inspection_id=inspection_id,
        user_id=p.user_id,
        role=p.role,
        payload=CompletionPayload(**payload.model_dump()),
    )
    if isinstance(out, CompletionPreview):
        return CompletionPreviewOut(**out.as_dict())

    return CompletionOut(
        inspection=InspectionOut.model_validate(out.inspection),
        status=out.inspection.status,
        jobs=[JobOut.model_validate(j) for j in out.artifacts.jobs],
        recommendations=[RecommendationOut.model_validate(r) for r in out.artifacts.recommendations],
    )


@router.post("/{inspection_id}/approve", response_model=InspectionOut)
def approve(
    inspection_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_approver),
):
    return approve_inspection(db, inspection_id=inspection_id, user_id=p.user_id)


@router.post("/{inspection_id}/reject", response_model=InspectionOut)
def reject(
    inspection_id: int,
    payload: InspectionRejectIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_approver),
):
    return reject_inspection(
        db,
        inspection_id=inspection_id,
        user_id=p.user_id,
        reason=payload.rejection_reason,
        reassign_to_id=payload.reassign_to_id,
    )


@router.post("/{inspection_id}/cancel", response_model=InspectionOut)
def cancel(
    inspection_id: int,
    payload: InspectionCancelIn | None = None,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_approver),
):
    reason = payload.reason if payload else None
    return cancel_inspection(db, inspection_id=inspection_id, user_id=p.user_id, reason=reason)


@router.post("/{inspection_id}/signature", response_model=InspectionOut)
def signature(
    inspection_id: int,
    payload: InspectionSignatureIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_completer),
):
    return add_signature(db, inspection_id=inspection_id, user_id=p.user_id, signature_url=payload.signature_url)
