# backend/tests/test_sweep_entrypoints.py
from __future__ import annotations

import json
import sys
from datetime import date, timedelta

from leaseflow.cli.__main__ import main
from leaseflow.domain.states import LeaseStatus
from leaseflow.models import Lease
from leaseflow.workers.celery_app import celery_app
from leaseflow.workers.sweep_tasks import expire_overdue_leases

from flows import lease_for_new_tenant


def test_beat_schedule_registers_all_sweeps():
    tasks = {entry["task"] for entry in celery_app.conf.beat_schedule.values()}
    assert tasks == {
        "leaseflow.workers.sweep_tasks.expire_overdue_leases",
        "leaseflow.workers.sweep_tasks.expire_lapsed_lease_offers",
        "leaseflow.workers.sweep_tasks.expire_stale_applications",
    }


def test_task_runs_sweep_for_one_org(db_session, actor, apps, make_property, make_prospect):
    lease_id = lease_for_new_tenant(apps, make_prospect(), make_property())
    db_session.get(Lease, lease_id).end_date = date.today() - timedelta(days=1)
    db_session.commit()

    out = expire_overdue_leases(actor.org_id)
    assert out["ok"] is True
    assert out["total"] == 1
    assert out["correlation_id"].startswith("sweep-")
    assert out["orgs"][0]["org_id"] == actor.org_id

    db_session.expire_all()
    assert db_session.get(Lease, lease_id).status == LeaseStatus.EXPIRED


def _cli(monkeypatch, capsys, *argv) -> dict:
    monkeypatch.setattr("leaseflow.cli.__main__.configure_logging", lambda: None)
    monkeypatch.setattr(sys, "argv", ["leaseflow", *argv])
    main()
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


def test_cli_sweep_for_org(monkeypatch, capsys, actor):
    out = _cli(monkeypatch, capsys, "sweep", "--org-slug", actor.org_slug, "--only", "expire_stale_applications")
    assert out["ok"] is True
    assert out["orgs"] == [{"org_id": actor.org_id, "counts": {"expire_stale_applications": 0}, "errors": []}]


def test_cli_unknown_org(monkeypatch, capsys):
    out = _cli(monkeypatch, capsys, "sweep", "--org-slug", "does-not-exist")
    assert out == {"ok": False, "error": "unknown org: does-not-exist"}
