# backend/app/domain/audit.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Inspection, InspectionAuditLog

log = logging.getLogger(__name__)

CREATED = "CREATED"
STARTED = "STARTED"
COMPLETED = "COMPLETED"
APPROVED = "APPROVED"
REJECTED = "REJECTED"
CANCELLED = "CANCELLED"
JOB_CREATED = "JOB_CREATED"
RECOMMENDATION_CREATED = "RECOMMENDATION_CREATED"
SIGNATURE_ADDED = "SIGNATURE_ADDED"

# Fields captured in before/after snapshots.
SNAPSHOT_FIELDS = (
    "status",
    "assigned_to_id",
    "completed_by_id",
    "completed_date",
    "approved_by_id",
    "approved_at",
    "rejected_by_id",
    "rejected_at",
    "rejection_reason",
    "findings",
    "notes",
    "tags_json",
    "tenant_signature",
)


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def inspection_snapshot(insp: Inspection) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k in SNAPSHOT_FIELDS:
        v = getattr(insp, k, None)
        out[k] = v.isoformat() if isinstance(v, datetime) else v
    return out


def audit_write(
    db: Session,
    *,
    inspection_id: int,
    user_id: Optional[int],
    action: str,
    changes: Optional[dict[str, Any]] = None,
) -> Optional[InspectionAuditLog]:
    """
    Append one audit entry inside the caller's transaction.

    - Runs in a SAVEPOINT: a failed audit insert is rolled back alone, logged,
      and the surrounding unit of work carries on.
    - Never commits. Returns None when the write failed.
    """
    # Caller's pending writes flush outside the savepoint so their errors propagate.
    db.flush()
    try:
        with db.begin_nested():
            row = InspectionAuditLog(
                inspection_id=int(inspection_id),
                user_id=int(user_id) if user_id is not None else None,
                action=str(action),
                changes_json=_dumps(changes),
                created_at=datetime.utcnow(),
            )
            db.add(row)
        return row
    except Exception:
        log.exception(
            "failed to persist inspection audit log",
            extra={"inspection_id": inspection_id, "user_id": user_id},
        )
        return None


def list_audit(db: Session, *, inspection_id: int, limit: int = 200) -> list[InspectionAuditLog]:
    q = (
        select(InspectionAuditLog)
        .where(InspectionAuditLog.inspection_id == int(inspection_id))
        .order_by(InspectionAuditLog.id.asc())
        .limit(int(limit))
    )
    return list(db.scalars(q).all())
