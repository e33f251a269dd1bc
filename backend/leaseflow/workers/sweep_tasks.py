# backend/leaseflow/workers/sweep_tasks.py
from __future__ import annotations

import logging
from typing import Optional

from ..db import SessionLocal
from ..logging_config import correlation
from ..services.sweeps import list_org_ids, run_sweep
from .celery_app import celery_app

log = logging.getLogger("leaseflow.workers")


def _run(sweep: str, org_id: Optional[int]) -> dict:
    """
    Runs one sweep for one org (or every org). Each org gets its own
    units of work; one org failing does not stop the rest.
    """
    db = SessionLocal()
    try:
        with correlation(prefix="sweep") as cid:
            org_ids = [int(org_id)] if org_id is not None else list_org_ids(db)
            reports = []
            for oid in org_ids:
                try:
                    reports.append(run_sweep(db, org_id=oid, sweep=sweep).as_dict())
                except Exception:
                    log.exception("sweep_failed %s", sweep, extra={"org_id": oid, "task": sweep})
                    db.rollback()
                    reports.append({"org_id": oid, "counts": {sweep: 0}, "errors": ["sweep failed"]})
        total = sum(int(r["counts"].get(sweep, 0)) for r in reports)
        return {"ok": True, "sweep": sweep, "correlation_id": cid, "total": total, "orgs": reports}
    finally:
        db.close()


@celery_app.task(name="leaseflow.workers.sweep_tasks.expire_overdue_leases")
def expire_overdue_leases(org_id: Optional[int] = None) -> dict:
    return _run("expire_overdue_leases", org_id)


@celery_app.task(name="leaseflow.workers.sweep_tasks.expire_lapsed_lease_offers")
def expire_lapsed_lease_offers(org_id: Optional[int] = None) -> dict:
    return _run("expire_lapsed_lease_offers", org_id)


@celery_app.task(name="leaseflow.workers.sweep_tasks.expire_stale_applications")
def expire_stale_applications(org_id: Optional[int] = None) -> dict:
    return _run("expire_stale_applications", org_id)
