# backend/app/services/followups.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain import audit
from ..domain.findings import parse_findings
from ..domain.inspection_status import ITEM_FAILED
from ..models import Inspection, InspectionReport, Job, Recommendation

JOB_STATUS_OPEN = "OPEN"
RECOMMENDATION_PRIORITY = "MEDIUM"
RECOMMENDATION_STATUS_SUBMITTED = "SUBMITTED"


@dataclass(frozen=True)
class JobDraft:
    title: str
    description: str
    priority: str
    property_id: int
    unit_id: Optional[int]
    inspection_id: int
    status: str = JOB_STATUS_OPEN

    def as_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "property_id": self.property_id,
            "unit_id": self.unit_id,
            "inspection_id": self.inspection_id,
        }


@dataclass(frozen=True)
class RecommendationDraft:
    title: str
    description: str
    property_id: int
    room_name: str
    checklist_item_id: Optional[int]
    priority: str = RECOMMENDATION_PRIORITY
    status: str = RECOMMENDATION_STATUS_SUBMITTED

    def as_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "property_id": self.property_id,
            "room_name": self.room_name,
            "checklist_item_id": self.checklist_item_id,
        }


@dataclass(frozen=True)
class FollowUpPlan:
    jobs: list[JobDraft] = field(default_factory=list)
    recommendations: list[RecommendationDraft] = field(default_factory=list)


@dataclass
class FollowUpArtifacts:
    jobs: list[Job] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)


def recommendation_title(inspection_title: str, room_name: str, item_description: str) -> str:
    limit = int(settings.recommendation_title_max_chars)
    return f"{inspection_title} - {room_name}: {(item_description or '')[:limit]}"


def plan_followups(
    inspection: Inspection,
    *,
    findings_text: Optional[str],
    auto_create_jobs: bool,
    title: Optional[str] = None,
) -> FollowUpPlan:
    """
    Derive every artifact a completion would create. Pure: reads the loaded
    inspection tree, never touches the session.

    Both the preview and the real completion go through here.
    """
    base_title = title if title is not None else inspection.title

    jobs: list[JobDraft] = []
    if auto_create_jobs:
        for n, finding in enumerate(parse_findings(findings_text), start=1):
            jobs.append(
                JobDraft(
                    title=f"{base_title} - Follow-Up {n}",
                    description=finding.description,
                    priority=finding.priority,
                    property_id=inspection.property_id,
                    unit_id=inspection.unit_id,
                    inspection_id=inspection.id,
                )
            )

    recs: list[RecommendationDraft] = []
    for room in inspection.rooms:
        for item in room.checklist_items:
            if (item.status or "").upper() != ITEM_FAILED:
                continue
            recs.append(
                RecommendationDraft(
                    title=recommendation_title(base_title, room.name, item.description),
                    description=f"Failed inspection item in {room.name}: {item.description}",
                    property_id=inspection.property_id,
                    room_name=room.name,
                    checklist_item_id=item.id,
                )
            )

    return FollowUpPlan(jobs=jobs, recommendations=recs)


def _report_id_for(db: Session, inspection_id: int) -> Optional[int]:
    return db.scalar(
        select(InspectionReport.id)
        .where(InspectionReport.inspection_id == int(inspection_id))
        .order_by(InspectionReport.id.asc())
        .limit(1)
    )


def _new_job(draft: JobDraft, now: datetime) -> Job:
    return Job(
        title=draft.title,
        description=draft.description,
        priority=draft.priority,
        status=draft.status,
        property_id=draft.property_id,
        unit_id=draft.unit_id,
        inspection_id=draft.inspection_id,
        created_at=now,
    )


def _new_recommendation(
    draft: RecommendationDraft, *, report_id: Optional[int], created_by_id: Optional[int], now: datetime
) -> Recommendation:
    return Recommendation(
        title=draft.title,
        description=draft.description,
        priority=draft.priority,
        status=draft.status,
        property_id=draft.property_id,
        report_id=report_id,
        created_by_id=created_by_id,
        created_at=now,
    )


def apply_followups(
    tx: Session,
    plan: FollowUpPlan,
    *,
    inspection_id: int,
    actor_user_id: Optional[int],
) -> FollowUpArtifacts:
    """
    Materialize a plan inside the caller's unit of work. Each artifact is
    followed by its own audit entry. Does NOT commit; an artifact failure
    propagates so the whole transaction rolls back.
    """
    now = datetime.utcnow()
    out = FollowUpArtifacts()

    for draft in plan.jobs:
        job = _new_job(draft, now)
        tx.add(job)
        tx.flush()
        out.jobs.append(job)
        audit.audit_write(
            tx,
            inspection_id=inspection_id,
            user_id=actor_user_id,
            action=audit.JOB_CREATED,
            changes={"job_id": job.id, "priority": job.priority},
        )

    if plan.recommendations:
        report_id = _report_id_for(tx, inspection_id)
        for draft in plan.recommendations:
            rec = _new_recommendation(draft, report_id=report_id, created_by_id=actor_user_id, now=now)
            tx.add(rec)
            tx.flush()
            out.recommendations.append(rec)
            audit.audit_write(
                tx,
                inspection_id=inspection_id,
                user_id=actor_user_id,
                action=audit.RECOMMENDATION_CREATED,
                changes={"recommendation_id": rec.id, "checklist_item_id": draft.checklist_item_id},
            )

    return out
