# backend/app/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .domain.inspection_status import (
    APPROVER_ROLES,
    COMPLETER_ROLES,
    ROLE_TECHNICIAN,
    ROLES,
    normalize_role,
)
from .models import AppUser


@dataclass(frozen=True)
class Principal:
    user_id: int
    email: str
    role: str  # TECHNICIAN | PROPERTY_MANAGER | OWNER | ADMIN | TENANT


def _get_user_by_email(db: Session, email: str) -> AppUser | None:
    return db.scalar(select(AppUser).where(AppUser.email == email))


# -------------------------
# get_principal
# -------------------------
def get_principal(request: Request, db: Session = Depends(get_db)) -> Principal:
    """
    Caller identity comes from upstream; this layer only resolves it to a user.

    Auth modes:
      - header: trusted gateway sets the email header; the user must exist.
      - dev: same header, unknown users are provisioned with the role hint
        (ONLY if settings.auth_mode == "dev").
    """
    email = (request.headers.get(settings.dev_header_user_email) or "").strip().lower()
    if not email:
        raise HTTPException(status_code=401, detail=f"Missing {settings.dev_header_user_email}")

    user = _get_user_by_email(db, email=email)

    if user is None and settings.auth_mode == "dev" and settings.dev_auto_provision:
        role_hint = normalize_role(request.headers.get(settings.dev_header_user_role))
        user = AppUser(
            email=email,
            first_name=email.split("@")[0],
            role=role_hint if role_hint in ROLES else ROLE_TECHNICIAN,
            created_at=datetime.utcnow(),
        )
        db.add(user)
        db.commit()
        db.refresh(user)

    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")

    return Principal(user_id=int(user.id), email=str(user.email), role=normalize_role(user.role))


def require_roles(*roles: str) -> Callable[..., Principal]:
    allowed = frozenset(normalize_role(r) for r in roles)

    def _dep(p: Principal = Depends(get_principal)) -> Principal:
        if p.role not in allowed:
            raise HTTPException(status_code=403, detail=f"Requires role in {sorted(allowed)}")
        return p

    return _dep


require_approver = require_roles(*APPROVER_ROLES)
require_completer = require_roles(*COMPLETER_ROLES)
