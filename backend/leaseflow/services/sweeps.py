# backend/leaseflow/services/sweeps.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import system_principal
from ..models import Organization
from .application_workflow import ApplicationWorkflowService
from .lease_workflow import LeaseWorkflowService

log = logging.getLogger("leaseflow.sweeps")

SWEEPS = ("expire_overdue_leases", "expire_lapsed_lease_offers", "expire_stale_applications")


@dataclass(frozen=True)
class SweepReport:
    org_id: int
    counts: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {"org_id": self.org_id, "counts": dict(self.counts), "errors": list(self.errors)}


def list_org_ids(db: Session, *, org_slug: Optional[str] = None) -> list[int]:
    q = select(Organization.id).order_by(Organization.id.asc())
    if org_slug:
        q = q.where(Organization.slug == org_slug)
    return [int(x) for x in db.scalars(q).all()]


def run_sweep(db: Session, *, org_id: int, sweep: str) -> SweepReport:
    """Runs one expiry sweep for one org as the system principal."""
    if sweep not in SWEEPS:
        raise ValueError(f"unknown sweep: {sweep}")

    org = db.get(Organization, int(org_id))
    if org is None:
        return SweepReport(org_id=int(org_id), errors=["Organization not found"])
    actor = system_principal(org)

    if sweep == "expire_overdue_leases":
        res = LeaseWorkflowService(db, actor).expire_overdue_leases()
    elif sweep == "expire_lapsed_lease_offers":
        res = ApplicationWorkflowService(db, actor).expire_lapsed_lease_offers()
    else:
        res = ApplicationWorkflowService(db, actor).expire_stale_applications()

    errors = list(res.errors) if res.errors else []
    if not res.ok and not errors:
        errors = [res.message]
    count = int(res.data or 0) if res.ok else 0
    log.info("sweep_done %s", sweep, extra={"org_id": int(org_id), "task": sweep, "count": count})
    return SweepReport(org_id=int(org_id), counts={sweep: count}, errors=errors)


def run_all_sweeps(db: Session, *, org_id: int) -> SweepReport:
    counts: dict[str, int] = {}
    errors: list[str] = []
    for sweep in SWEEPS:
        r = run_sweep(db, org_id=org_id, sweep=sweep)
        counts.update(r.counts)
        errors.extend(r.errors)
    return SweepReport(org_id=int(org_id), counts=counts, errors=errors)
