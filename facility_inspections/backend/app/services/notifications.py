# backend/app/services/notifications.py
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional, Protocol

from ..config import settings
from ..workers.notification_tasks import deliver_notification

log = logging.getLogger(__name__)

INSPECTION_COMPLETED = "INSPECTION_COMPLETED"
INSPECTION_APPROVED = "INSPECTION_APPROVED"
INSPECTION_REJECTED = "INSPECTION_REJECTED"
RECOMMENDATION_CREATED = "RECOMMENDATION_CREATED"
INSPECTION_OVERDUE = "INSPECTION_OVERDUE"
OVERDUE_DIGEST = "OVERDUE_INSPECTIONS_DIGEST"


@dataclass(frozen=True)
class Notice:
    """One message for one recipient."""

    user_id: int
    type: str
    title: str
    message: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    def as_payload(self) -> dict[str, Any]:
        # JSON-safe copy; this is what travels through the broker
        return json.loads(json.dumps(asdict(self), default=str))


# -----------------------------------------------------------------------------
# Events (built after commit; recipients already resolved)
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class InspectionCompleted:
    inspection_id: int
    inspection_title: str
    property_name: str
    status: str
    actor_name: str
    manager_id: Optional[int]
    findings: Optional[str] = None
    follow_up_jobs: tuple[dict[str, Any], ...] = ()

    def notices(self) -> list[Notice]:
        if self.manager_id is None:
            return []
        return [
            Notice(
                user_id=self.manager_id,
                type=INSPECTION_COMPLETED,
                title="Inspection Completed",
                message=f"{self.actor_name} completed inspection: {self.inspection_title}",
                entity_type="inspection",
                entity_id=str(self.inspection_id),
                data={
                    "property_name": self.property_name,
                    "status": self.status,
                    "findings": self.findings,
                    "follow_up_jobs": list(self.follow_up_jobs),
                    "inspection_url": f"{settings.frontend_url}/inspections/{self.inspection_id}",
                },
            )
        ]


@dataclass(frozen=True)
class RecommendationCreated:
    recommendation_id: int
    recommendation_title: str
    description: Optional[str]
    priority: str
    inspection_title: str
    property_name: str
    actor_name: str
    owner_ids: tuple[int, ...] = ()

    def notices(self) -> list[Notice]:
        return [
            Notice(
                user_id=owner_id,
                type=RECOMMENDATION_CREATED,
                title="New Inspection Recommendation",
                message=f'A new recommendation has been created from inspection: "{self.inspection_title}"',
                entity_type="recommendation",
                entity_id=str(self.recommendation_id),
                data={
                    "recommendation_title": self.recommendation_title,
                    "description": self.description,
                    "priority": self.priority,
                    "property_name": self.property_name,
                    "manager_name": self.actor_name,
                    "recommendation_url": f"{settings.frontend_url}/recommendations",
                },
            )
            for owner_id in self.owner_ids
        ]


@dataclass(frozen=True)
class InspectionApproved:
    inspection_id: int
    inspection_title: str
    property_name: str
    assignee_id: Optional[int]

    def notices(self) -> list[Notice]:
        if self.assignee_id is None:
            return []
        return [
            Notice(
                user_id=self.assignee_id,
                type=INSPECTION_APPROVED,
                title="Inspection Approved",
                message=f'Your inspection "{self.inspection_title}" has been approved by the property manager',
                entity_type="inspection",
                entity_id=str(self.inspection_id),
                data={
                    "property_name": self.property_name,
                    "inspection_url": f"{settings.frontend_url}/inspections/{self.inspection_id}",
                },
            )
        ]


@dataclass(frozen=True)
class InspectionRejected:
    inspection_id: int
    inspection_title: str
    property_name: str
    reason: str
    recipient_id: Optional[int]

    def notices(self) -> list[Notice]:
        if self.recipient_id is None:
            return []
        return [
            Notice(
                user_id=self.recipient_id,
                type=INSPECTION_REJECTED,
                title="Inspection Rejected",
                message=f'Inspection "{self.inspection_title}" needs rework: {self.reason}',
                entity_type="inspection",
                entity_id=str(self.inspection_id),
                data={
                    "property_name": self.property_name,
                    "rejection_reason": self.reason,
                    "inspection_url": f"{settings.frontend_url}/inspections/{self.inspection_id}",
                },
            )
        ]


@dataclass(frozen=True)
class InspectionOverdue:
    inspection_id: int
    inspection_title: str
    inspection_type: str
    property_name: str
    scheduled_date: datetime
    days_overdue: int
    assignee_id: Optional[int]
    unit_number: Optional[str] = None

    def notices(self) -> list[Notice]:
        if self.assignee_id is None:
            return []
        return [
            Notice(
                user_id=self.assignee_id,
                type=INSPECTION_OVERDUE,
                title="Inspection Overdue",
                message=f"Overdue inspection: {self.inspection_title} at {self.property_name}",
                entity_type="inspection",
                entity_id=str(self.inspection_id),
                data={
                    "inspection_type": self.inspection_type,
                    "property_name": self.property_name,
                    "scheduled_date": self.scheduled_date.isoformat(),
                    "days_overdue": self.days_overdue,
                    "unit_number": self.unit_number,
                    "inspection_url": f"{settings.frontend_url}/inspections/{self.inspection_id}",
                },
            )
        ]


@dataclass(frozen=True)
class OverdueDigest:
    """One summary per property manager covering all of their overdue inspections."""

    manager_id: int
    inspections: tuple[dict[str, Any], ...]

    def notices(self) -> list[Notice]:
        if not self.inspections:
            return []
        n = len(self.inspections)
        return [
            Notice(
                user_id=self.manager_id,
                type=OVERDUE_DIGEST,
                title="Overdue Inspections",
                message=f"{n} inspection{'s are' if n != 1 else ' is'} overdue",
                data={"inspections": list(self.inspections)},
            )
        ]


class NotificationEvent(Protocol):
    def notices(self) -> list[Notice]: ...


# -----------------------------------------------------------------------------
# Sinks
# -----------------------------------------------------------------------------
class NotificationSink(Protocol):
    def deliver(self, notice: Notice) -> None: ...


class CeleryNotificationSink:
    """
    Enqueues one deliver_notification task per notice on the `notifications`
    queue. The worker writes the in-app row; nothing waits on it here.
    """

    def deliver(self, notice: Notice) -> None:
        deliver_notification.delay(notice=notice.as_payload())


class RecordingSink:
    """Collects notices in memory (tests, dry runs)."""

    def __init__(self) -> None:
        self.delivered: list[Notice] = []

    def deliver(self, notice: Notice) -> None:
        self.delivered.append(notice)


# -----------------------------------------------------------------------------
# Dispatcher
# -----------------------------------------------------------------------------
class NotificationDispatcher:
    """
    Fan-out of post-commit events. Every recipient is handed to the sink
    independently; failures are logged and never raised to the caller.
    """

    def __init__(self, sink: NotificationSink | None = None) -> None:
        self.sink = sink or CeleryNotificationSink()

    def publish(self, events: Iterable[NotificationEvent]) -> int:
        """Returns the number of notices the sink accepted."""
        notices: list[Notice] = []
        for ev in events:
            try:
                notices.extend(ev.notices())
            except Exception:
                log.exception("failed to build notices for %s", type(ev).__name__)

        accepted = 0
        for notice in notices:
            try:
                self.sink.deliver(notice)
                accepted += 1
            except Exception:
                log.exception("failed to hand off %s notification", notice.type, extra={"user_id": notice.user_id})
        return accepted


_default_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    global _default_dispatcher
    if _default_dispatcher is None:
        _default_dispatcher = NotificationDispatcher()
    return _default_dispatcher


def set_dispatcher(dispatcher: NotificationDispatcher | None) -> None:
    global _default_dispatcher
    _default_dispatcher = dispatcher
