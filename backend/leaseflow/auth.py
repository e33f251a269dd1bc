# backend/leaseflow/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import AppUser, Organization, OrgMembership


@dataclass(frozen=True)
class Principal:
    """Actor context for workflow operations: who is acting, in which org."""

    org_id: int
    org_slug: str
    user_id: int
    email: str
    role: str  # owner | operator | analyst | system

    def current_user_id(self) -> str:
        if self.role == "system":
            return settings.system_actor
        return str(self.user_id)

    def active_organization_id(self) -> int:
        return int(self.org_id)


ROLE_ORDER = {"analyst": 1, "operator": 2, "owner": 3, "system": 4}


def system_principal(org: Organization) -> Principal:
    """Principal used by scheduled sweeps (no human actor)."""
    return Principal(
        org_id=int(org.id),
        org_slug=str(org.slug),
        user_id=0,
        email=f"{settings.system_actor}@leaseflow.local",
        role="system",
    )


def _require_role(principal: Principal, min_role: str) -> None:
    if ROLE_ORDER.get(principal.role, 0) < ROLE_ORDER.get(min_role, 999):
        raise HTTPException(status_code=403, detail=f"Requires role >= {min_role}")


# -------------------------
# Org + membership helpers
# -------------------------
def _get_org(db: Session, org_slug: str) -> Organization | None:
    return db.scalar(select(Organization).where(Organization.slug == org_slug))


def _get_user_by_email(db: Session, email: str) -> AppUser | None:
    return db.scalar(select(AppUser).where(AppUser.email == email))


def _get_membership(db: Session, org_id: int, user_id: int) -> OrgMembership | None:
    return db.scalar(select(OrgMembership).where(OrgMembership.org_id == org_id, OrgMembership.user_id == user_id))


def _provision(db: Session, *, org_slug: str, email: str, role_hint: str) -> tuple[Organization, AppUser, OrgMembership]:
    org = _get_org(db, org_slug)
    if org is None:
        org = Organization(slug=org_slug, name=org_slug, created_at=datetime.utcnow())
        db.add(org)
        db.flush()

    user = _get_user_by_email(db, email)
    if user is None:
        user = AppUser(email=email, display_name=email.split("@")[0], created_at=datetime.utcnow())
        db.add(user)
        db.flush()

    mem = _get_membership(db, int(org.id), int(user.id))
    if mem is None:
        role = role_hint if role_hint in ROLE_ORDER and role_hint != "system" else "owner"
        mem = OrgMembership(org_id=int(org.id), user_id=int(user.id), role=role, created_at=datetime.utcnow())
        db.add(mem)

    db.commit()
    return org, user, mem


def get_principal(
    db: Session = Depends(get_db),
    x_org_slug: Optional[str] = Header(default=None, alias="X-Org-Slug"),
    x_user_email: Optional[str] = Header(default=None, alias="X-User-Email"),
    x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
) -> Principal:
    """
    Dev header auth (settings.auth_mode == "dev"):
      X-Org-Slug + X-User-Email, auto-provisioned when dev_auto_provision is on.
    """
    org_slug = str(x_org_slug or "").strip()
    if not org_slug:
        raise HTTPException(status_code=401, detail="Missing X-Org-Slug (active org context).")

    if settings.auth_mode != "dev":
        raise HTTPException(status_code=401, detail="Not authenticated")

    email = str(x_user_email or "").strip().lower()
    if not email:
        raise HTTPException(status_code=401, detail="Missing X-User-Email for dev auth")
    role_hint = str(x_user_role or "owner").strip().lower()

    if settings.dev_auto_provision:
        org, user, mem = _provision(db, org_slug=org_slug, email=email, role_hint=role_hint)
    else:
        org = _get_org(db, org_slug)
        user = _get_user_by_email(db, email)
        if org is None or user is None:
            raise HTTPException(status_code=401, detail="Unknown org or user")
        mem = _get_membership(db, int(org.id), int(user.id))
        if mem is None:
            raise HTTPException(status_code=403, detail="Not a member of this org")

    return Principal(
        org_id=int(org.id),
        org_slug=str(org.slug),
        user_id=int(user.id),
        email=str(user.email),
        role=str(mem.role),
    )


def require_operator(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, "operator")
    return p


def require_owner(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, "owner")
    return p
