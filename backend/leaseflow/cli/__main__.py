# backend/leaseflow/cli/__main__.py
from __future__ import annotations

import argparse
import json

from leaseflow.db import SessionLocal, init_db
from leaseflow.logging_config import configure_logging, correlation
from leaseflow.services.sweeps import SWEEPS, list_org_ids, run_all_sweeps, run_sweep


def _sweep(org_slug: str | None, only: str | None) -> dict:
    db = SessionLocal()
    try:
        org_ids = list_org_ids(db, org_slug=org_slug)
        if org_slug and not org_ids:
            return {"ok": False, "error": f"unknown org: {org_slug}"}
        reports = []
        for oid in org_ids:
            r = run_sweep(db, org_id=oid, sweep=only) if only else run_all_sweeps(db, org_id=oid)
            reports.append(r.as_dict())
        return {"ok": True, "orgs": reports}
    finally:
        db.close()


def main() -> None:
    configure_logging()

    p = argparse.ArgumentParser(prog="leaseflow")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init-db", help="create tables")

    s = sub.add_parser("sweep", help="run expiry sweeps")
    s.add_argument("--org-slug", default=None)
    s.add_argument("--only", choices=list(SWEEPS), default=None)

    args = p.parse_args()

    if args.cmd == "init-db":
        init_db()
        print(json.dumps({"ok": True}))
        return

    with correlation(prefix="sweep"):
        print(json.dumps(_sweep(args.org_slug, args.only), default=str))


if __name__ == "__main__":
    main()
