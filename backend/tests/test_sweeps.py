# backend/tests/test_sweeps.py
from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from leaseflow.domain.audit import audit_history
from leaseflow.domain.states import ApplicationStatus, LeaseOfferStatus, LeaseStatus
from leaseflow.models import Lease, LeaseOffer, RentalApplication
from leaseflow.services.sweeps import SWEEPS, list_org_ids, run_all_sweeps, run_sweep

from flows import approve, lease_for_new_tenant, offer_terms, submit


def test_unknown_sweep_is_rejected(db_session, actor):
    with pytest.raises(ValueError):
        run_sweep(db_session, org_id=actor.org_id, sweep="expire_everything")


def test_list_org_ids_filters_by_slug(db_session, actor):
    assert list_org_ids(db_session, org_slug=actor.org_slug) == [actor.org_id]
    assert actor.org_id in list_org_ids(db_session)
    assert list_org_ids(db_session, org_slug="no-such-org") == []


def test_missing_org_reports_error(db_session):
    report = run_sweep(db_session, org_id=99999999, sweep="expire_overdue_leases")
    assert report.errors == ["Organization not found"]
    assert report.counts == {}


def test_lapsed_offer_sweep_runs_as_system(db_session, actor, apps, make_property, make_prospect):
    app_id = submit(apps, make_prospect(), make_property())
    approve(apps, app_id)
    offer_id = apps.generate_lease_offer(app_id, offer_terms()).data.id

    offer = db_session.get(LeaseOffer, offer_id)
    offer.expires_on = datetime.utcnow() - timedelta(hours=1)
    db_session.commit()

    report = run_sweep(db_session, org_id=actor.org_id, sweep="expire_lapsed_lease_offers")
    assert report.counts == {"expire_lapsed_lease_offers": 1}
    assert report.errors == []

    assert db_session.get(LeaseOffer, offer_id).status == LeaseOfferStatus.EXPIRED
    assert db_session.get(RentalApplication, app_id).status == ApplicationStatus.EXPIRED

    last = audit_history(db_session, org_id=actor.org_id, entity_type="LeaseOffer", entity_id=offer_id)[-1]
    assert last.performed_by == "system"
    assert last.reason == "Offer expired"


def test_run_all_sweeps(db_session, actor, apps, make_property, make_prospect):
    stale_app = submit(apps, make_prospect(), make_property())
    row = db_session.get(RentalApplication, stale_app)
    row.expires_on = datetime.utcnow() - timedelta(days=2)
    db_session.commit()

    lease_id = lease_for_new_tenant(apps, make_prospect(), make_property())
    lease = db_session.get(Lease, lease_id)
    lease.end_date = date.today() - timedelta(days=3)
    db_session.commit()

    report = run_all_sweeps(db_session, org_id=actor.org_id)
    assert set(report.counts) == set(SWEEPS)
    assert report.counts["expire_overdue_leases"] == 1
    assert report.counts["expire_stale_applications"] == 1
    assert report.counts["expire_lapsed_lease_offers"] == 0
    assert report.as_dict()["errors"] == []

    assert db_session.get(Lease, lease_id).status == LeaseStatus.EXPIRED
    assert db_session.get(RentalApplication, stale_app).status == ApplicationStatus.EXPIRED


def test_sweeps_are_idempotent(db_session, actor):
    first = run_all_sweeps(db_session, org_id=actor.org_id)
    second = run_all_sweeps(db_session, org_id=actor.org_id)
    assert first.counts == second.counts == {name: 0 for name in SWEEPS}
