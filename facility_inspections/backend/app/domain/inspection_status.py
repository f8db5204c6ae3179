# backend/app/domain/inspection_status.py
from __future__ import annotations

# -----------------------------------------------------------------------------
# Inspection statuses
# -----------------------------------------------------------------------------
SCHEDULED = "SCHEDULED"
IN_PROGRESS = "IN_PROGRESS"
PENDING_APPROVAL = "PENDING_APPROVAL"
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"

INSPECTION_STATUSES = [SCHEDULED, IN_PROGRESS, PENDING_APPROVAL, COMPLETED, CANCELLED]

INSPECTION_TRANSITIONS: dict[str, frozenset[str]] = {
    SCHEDULED: frozenset({IN_PROGRESS, CANCELLED}),
    IN_PROGRESS: frozenset({PENDING_APPROVAL, COMPLETED, CANCELLED}),
    PENDING_APPROVAL: frozenset({COMPLETED, IN_PROGRESS, CANCELLED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, nxt in INSPECTION_TRANSITIONS.items() if not nxt)

# Completion may start from SCHEDULED (implicit start) or IN_PROGRESS.
COMPLETABLE_STATUSES = frozenset({SCHEDULED, IN_PROGRESS})

# -----------------------------------------------------------------------------
# Inspection types / checklist items
# -----------------------------------------------------------------------------
INSPECTION_TYPES = ["ROUTINE", "MOVE_IN", "MOVE_OUT", "EMERGENCY", "COMPLIANCE"]
SIGNATURE_TYPES = frozenset({"MOVE_IN", "MOVE_OUT"})

ITEM_PENDING = "PENDING"
ITEM_PASSED = "PASSED"
ITEM_FAILED = "FAILED"
ITEM_NA = "NA"

# -----------------------------------------------------------------------------
# Roles
# -----------------------------------------------------------------------------
ROLE_TECHNICIAN = "TECHNICIAN"
ROLE_PROPERTY_MANAGER = "PROPERTY_MANAGER"
ROLE_OWNER = "OWNER"
ROLE_ADMIN = "ADMIN"
ROLE_TENANT = "TENANT"

ROLES = [ROLE_TECHNICIAN, ROLE_PROPERTY_MANAGER, ROLE_OWNER, ROLE_ADMIN, ROLE_TENANT]
APPROVER_ROLES = frozenset({ROLE_PROPERTY_MANAGER, ROLE_ADMIN})
COMPLETER_ROLES = frozenset({ROLE_TECHNICIAN, ROLE_PROPERTY_MANAGER, ROLE_ADMIN})


def normalize_role(role: str | None) -> str:
    return (role or "").strip().upper()


def is_valid_transition(current: str, target: str) -> bool:
    return target in INSPECTION_TRANSITIONS.get(current, frozenset())


def completion_status_for_role(role: str | None) -> str:
    """
    Technicians hand off for review; everyone else closes the inspection directly.
    """
    return PENDING_APPROVAL if normalize_role(role) == ROLE_TECHNICIAN else COMPLETED
