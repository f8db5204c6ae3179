# backend/app/services/inspection_lifecycle.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..config import settings
from ..db import run_in_unit_of_work
from ..domain import audit
from ..domain.errors import InvalidStateError, NotFoundError, ValidationError
from ..domain.inspection_status import (
    CANCELLED,
    COMPLETABLE_STATUSES,
    COMPLETED,
    IN_PROGRESS,
    PENDING_APPROVAL,
    SCHEDULED,
    SIGNATURE_TYPES,
    TERMINAL_STATUSES,
    completion_status_for_role,
    is_valid_transition,
)
from ..models import AppUser, Inspection, InspectionRoom, Property, PropertyOwnership
from .followups import FollowUpArtifacts, FollowUpPlan, apply_followups, plan_followups
from .notifications import (
    InspectionApproved,
    InspectionCompleted,
    InspectionRejected,
    NotificationDispatcher,
    NotificationEvent,
    RecommendationCreated,
    get_dispatcher,
)

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.utcnow()


@dataclass(frozen=True)
class CompletionPayload:
    findings: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    auto_create_jobs: bool = False
    preview_only: bool = False


@dataclass(frozen=True)
class CompletionPreview:
    plan: FollowUpPlan
    status: str

    def as_dict(self) -> dict:
        return {
            "preview": True,
            "status": self.status,
            "jobs": [j.as_dict() for j in self.plan.jobs],
            "recommendations": [r.as_dict() for r in self.plan.recommendations],
        }


@dataclass
class CompletionResult:
    inspection: Inspection
    artifacts: FollowUpArtifacts = field(default_factory=FollowUpArtifacts)


# -----------------------------------------------------------------------------
# Loading
# -----------------------------------------------------------------------------
def load_inspection(db: Session, inspection_id: int, *, with_rooms: bool = False) -> Inspection:
    q = select(Inspection).where(Inspection.id == int(inspection_id))
    if with_rooms:
        q = q.options(selectinload(Inspection.rooms).selectinload(InspectionRoom.checklist_items))
    row = db.scalar(q)
    if not row:
        raise NotFoundError("inspection not found")
    return row


def must_get_user(db: Session, user_id: int) -> AppUser:
    row = db.get(AppUser, int(user_id))
    if not row:
        raise NotFoundError("user not found")
    return row


def _tags_json(tags: Iterable[str]) -> str:
    # set semantics; stored sorted so snapshots are stable
    return json.dumps(sorted({str(t).strip() for t in tags if str(t).strip()}))


# -----------------------------------------------------------------------------
# Post-commit notifications
# -----------------------------------------------------------------------------
def _publish_after_commit(
    db: Session,
    dispatcher: Optional[NotificationDispatcher],
    build: Callable[[], list[NotificationEvent]],
    *,
    inspection_id: int,
) -> None:
    """
    Resolve recipients and hand events to the dispatcher. The state change is
    already committed; nothing here may raise.
    """
    try:
        events = build()
        # end the read transaction before sinks open their own sessions
        db.commit()
    except Exception:
        db.rollback()
        log.exception("failed to resolve notification recipients", extra={"inspection_id": inspection_id})
        return

    try:
        (dispatcher or get_dispatcher()).publish(events)
    except Exception:
        log.exception("notification dispatch failed", extra={"inspection_id": inspection_id})


def _property_name(db: Session, property_id: int) -> str:
    prop = db.get(Property, int(property_id))
    return prop.name if prop else ""


def _active_owner_ids(db: Session, property_id: int, now: datetime) -> tuple[int, ...]:
    rows = db.scalars(
        select(PropertyOwnership.owner_id).where(
            PropertyOwnership.property_id == int(property_id),
            (PropertyOwnership.end_date.is_(None)) | (PropertyOwnership.end_date > now),
        )
    ).all()
    # one notice per owner even with overlapping ownership rows
    return tuple(dict.fromkeys(int(x) for x in rows))


# -----------------------------------------------------------------------------
# complete
# -----------------------------------------------------------------------------
def complete_inspection(
    db: Session,
    *,
    inspection_id: int,
    user_id: int,
    role: str,
    payload: CompletionPayload,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Union[CompletionResult, CompletionPreview]:
    """
    Close out an inspection.

    - TECHNICIAN -> PENDING_APPROVAL; any other completer -> COMPLETED and
      self-approved (unless manager_completion_self_approves is off).
    - Completion from SCHEDULED implicitly passes through IN_PROGRESS.
    - preview_only returns what would be created and writes nothing.
    - Status, findings, follow-up jobs, recommendations and audit entries
      commit together or not at all.
    """
    insp = load_inspection(db, inspection_id, with_rooms=True)
    if insp.status not in COMPLETABLE_STATUSES:
        raise InvalidStateError(f"cannot complete inspection in status {insp.status}")

    target = completion_status_for_role(role)
    if target == COMPLETED and not settings.manager_completion_self_approves:
        target = PENDING_APPROVAL

    findings_text = payload.findings if payload.findings is not None else insp.findings
    plan = plan_followups(insp, findings_text=findings_text, auto_create_jobs=payload.auto_create_jobs)

    if payload.preview_only:
        return CompletionPreview(plan=plan, status=target)

    def work(tx: Session) -> FollowUpArtifacts:
        before = audit.inspection_snapshot(insp)
        from_status = insp.status
        now = _utcnow()

        insp.status = target
        insp.completed_date = now
        insp.completed_by_id = int(user_id)
        if payload.findings is not None:
            insp.findings = payload.findings
        if payload.notes is not None:
            insp.notes = payload.notes
        if payload.tags is not None:
            insp.tags_json = _tags_json(payload.tags)
        if target == COMPLETED:
            insp.approved_by_id = int(user_id)
            insp.approved_at = now
            insp.rejected_by_id = None
            insp.rejected_at = None
            insp.rejection_reason = None
        insp.updated_at = now

        audit.audit_write(
            tx,
            inspection_id=insp.id,
            user_id=user_id,
            action=audit.COMPLETED,
            changes={
                "before": before,
                "after": audit.inspection_snapshot(insp),
                "implicit_start": from_status == SCHEDULED,
            },
        )
        return apply_followups(tx, plan, inspection_id=insp.id, actor_user_id=user_id)

    artifacts = run_in_unit_of_work(db, work)
    log.info(
        "inspection completed status=%s jobs=%d recommendations=%d",
        insp.status,
        len(artifacts.jobs),
        len(artifacts.recommendations),
        extra={"inspection_id": insp.id, "user_id": user_id},
    )

    def build() -> list[NotificationEvent]:
        now = _utcnow()
        prop = db.get(Property, int(insp.property_id))
        prop_name = prop.name if prop else ""
        actor = db.get(AppUser, int(user_id))
        actor_name = actor.display_name if actor else "System"

        events: list[NotificationEvent] = [
            InspectionCompleted(
                inspection_id=insp.id,
                inspection_title=insp.title,
                property_name=prop_name,
                status=insp.status,
                actor_name=actor_name,
                manager_id=prop.manager_id if prop else None,
                findings=insp.findings,
                follow_up_jobs=tuple(
                    {"id": j.id, "title": j.title, "priority": j.priority} for j in artifacts.jobs
                ),
            )
        ]
        if artifacts.recommendations:
            owner_ids = _active_owner_ids(db, insp.property_id, now)
            for rec in artifacts.recommendations:
                events.append(
                    RecommendationCreated(
                        recommendation_id=rec.id,
                        recommendation_title=rec.title,
                        description=rec.description,
                        priority=rec.priority,
                        inspection_title=insp.title,
                        property_name=prop_name,
                        actor_name=actor_name,
                        owner_ids=owner_ids,
                    )
                )
        return events

    _publish_after_commit(db, dispatcher, build, inspection_id=insp.id)
    return CompletionResult(inspection=insp, artifacts=artifacts)


# -----------------------------------------------------------------------------
# approve / reject
# -----------------------------------------------------------------------------
def approve_inspection(
    db: Session,
    *,
    inspection_id: int,
    user_id: int,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Inspection:
    insp = load_inspection(db, inspection_id)
    if insp.status != PENDING_APPROVAL:
        raise InvalidStateError("inspection is not pending approval")

    def work(tx: Session) -> None:
        before = audit.inspection_snapshot(insp)
        now = _utcnow()
        insp.status = COMPLETED
        insp.approved_by_id = int(user_id)
        insp.approved_at = now
        insp.rejected_by_id = None
        insp.rejected_at = None
        insp.rejection_reason = None
        insp.updated_at = now
        audit.audit_write(
            tx,
            inspection_id=insp.id,
            user_id=user_id,
            action=audit.APPROVED,
            changes={"before": before, "after": audit.inspection_snapshot(insp)},
        )

    run_in_unit_of_work(db, work)
    log.info("inspection approved", extra={"inspection_id": insp.id, "user_id": user_id})

    _publish_after_commit(
        db,
        dispatcher,
        lambda: [
            InspectionApproved(
                inspection_id=insp.id,
                inspection_title=insp.title,
                property_name=_property_name(db, insp.property_id),
                assignee_id=insp.assigned_to_id,
            )
        ],
        inspection_id=insp.id,
    )
    return insp


def reject_inspection(
    db: Session,
    *,
    inspection_id: int,
    user_id: int,
    reason: str,
    reassign_to_id: Optional[int] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Inspection:
    """
    Send an inspection back for rework. Reassignment only happens when a new
    assignee is given; the notice goes to the reassignee, else the assignee.
    """
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("rejection_reason is required")

    insp = load_inspection(db, inspection_id)
    if insp.status != PENDING_APPROVAL:
        raise InvalidStateError("inspection is not pending approval")
    if reassign_to_id is not None:
        must_get_user(db, reassign_to_id)

    def work(tx: Session) -> None:
        before = audit.inspection_snapshot(insp)
        now = _utcnow()
        insp.status = IN_PROGRESS
        insp.rejection_reason = reason
        insp.rejected_by_id = int(user_id)
        insp.rejected_at = now
        insp.approved_by_id = None
        insp.approved_at = None
        if reassign_to_id is not None:
            insp.assigned_to_id = int(reassign_to_id)
        insp.updated_at = now
        audit.audit_write(
            tx,
            inspection_id=insp.id,
            user_id=user_id,
            action=audit.REJECTED,
            changes={
                "before": before,
                "after": audit.inspection_snapshot(insp),
                "reason": reason,
                "reassigned_to": reassign_to_id,
            },
        )

    run_in_unit_of_work(db, work)
    log.info("inspection rejected", extra={"inspection_id": insp.id, "user_id": user_id})

    _publish_after_commit(
        db,
        dispatcher,
        lambda: [
            InspectionRejected(
                inspection_id=insp.id,
                inspection_title=insp.title,
                property_name=_property_name(db, insp.property_id),
                reason=reason,
                recipient_id=reassign_to_id if reassign_to_id is not None else insp.assigned_to_id,
            )
        ],
        inspection_id=insp.id,
    )
    return insp


# -----------------------------------------------------------------------------
# start / cancel / signature
# -----------------------------------------------------------------------------
def _transition(db: Session, insp: Inspection, *, target: str, user_id: int, action: str, extra: Optional[dict] = None) -> Inspection:
    if not is_valid_transition(insp.status, target):
        raise InvalidStateError(f"cannot move inspection from {insp.status} to {target}")

    def work(tx: Session) -> None:
        from_status = insp.status
        insp.status = target
        insp.updated_at = _utcnow()
        changes = {"from": from_status, "to": target}
        changes.update(extra or {})
        audit.audit_write(tx, inspection_id=insp.id, user_id=user_id, action=action, changes=changes)

    run_in_unit_of_work(db, work)
    log.info("inspection %s -> %s", action, target, extra={"inspection_id": insp.id, "user_id": user_id})
    return insp


def start_inspection(db: Session, *, inspection_id: int, user_id: int) -> Inspection:
    insp = load_inspection(db, inspection_id)
    if insp.status != SCHEDULED:
        raise InvalidStateError("only scheduled inspections can be started")
    return _transition(db, insp, target=IN_PROGRESS, user_id=user_id, action=audit.STARTED)


def cancel_inspection(db: Session, *, inspection_id: int, user_id: int, reason: Optional[str] = None) -> Inspection:
    insp = load_inspection(db, inspection_id)
    if insp.status in TERMINAL_STATUSES:
        raise InvalidStateError(f"inspection is already {insp.status}")
    return _transition(
        db, insp, target=CANCELLED, user_id=user_id, action=audit.CANCELLED, extra={"reason": reason}
    )


def add_signature(db: Session, *, inspection_id: int, user_id: int, signature_url: str) -> Inspection:
    """Attach an already-uploaded tenant signature to a move-in/move-out inspection."""
    url = (signature_url or "").strip()
    if not url:
        raise ValidationError("signature_url is required")

    insp = load_inspection(db, inspection_id)
    if (insp.type or "").upper() not in SIGNATURE_TYPES:
        raise ValidationError("signatures are only collected for MOVE_IN and MOVE_OUT inspections")
    if insp.status == CANCELLED:
        raise InvalidStateError("inspection is cancelled")

    def work(tx: Session) -> None:
        previous = insp.tenant_signature
        insp.tenant_signature = url
        insp.updated_at = _utcnow()
        audit.audit_write(
            tx,
            inspection_id=insp.id,
            user_id=user_id,
            action=audit.SIGNATURE_ADDED,
            changes={"signature_url": url, "replaced": previous},
        )

    run_in_unit_of_work(db, work)
    return insp
