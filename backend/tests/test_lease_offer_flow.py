# backend/tests/test_lease_offer_flow.py
from __future__ import annotations

from datetime import date, datetime, timedelta

from sqlalchemy import func, select

from leaseflow.db import SessionLocal
from leaseflow.domain.audit import audit_history
from leaseflow.domain.results import FAULT, NOT_FOUND, VALIDATION
from leaseflow.domain.states import (
    ApplicationStatus,
    DepositStatus,
    LeaseOfferStatus,
    LeaseStatus,
    PropertyStatus,
    ProspectStatus,
)
from leaseflow.models import (
    LeaseOffer,
    Property,
    ProspectiveTenant,
    RentalApplication,
    SecurityDeposit,
    Tenant,
)
from leaseflow.schemas import ApplicationSubmission, LeaseOfferAcceptance, LeaseOfferTerms
from leaseflow.services import notifications as events
from leaseflow.services.application_workflow import COMPETITOR_DENIAL_REASON, ApplicationWorkflowService
from leaseflow.services.notes import NoteService

from flows import approve, offer_terms, submit

CARD = LeaseOfferAcceptance(deposit_payment_method="Card", deposit_reference_number="txn-1")


def _approved(apps, make_property, make_prospect, *, pid=None):
    pid = pid or make_property()
    prid = make_prospect()
    app_id = submit(apps, prid, pid)
    approve(apps, app_id)
    return app_id, pid, prid


def _lapse(db, offer_id: int) -> None:
    offer = db.get(LeaseOffer, offer_id)
    offer.expires_on = datetime.utcnow() - timedelta(minutes=1)
    db.commit()


def test_offer_accept_happy_path(db_session, actor, apps, notifier, make_property, make_prospect):
    app_id, pid, prid = _approved(apps, make_property, make_prospect)

    gen = apps.generate_lease_offer(app_id, offer_terms(rent=1450.0, deposit=1450.0))
    assert gen.ok, gen.message
    assert gen.message == "Lease offer generated successfully. 0 competing application(s) denied."
    offer_id = gen.data.id
    assert gen.data.status == LeaseOfferStatus.PENDING
    assert gen.data.expires_on - gen.data.offered_on == timedelta(days=30)
    assert db_session.get(Property, pid).status == PropertyStatus.LEASE_PENDING
    assert db_session.get(RentalApplication, app_id).status == ApplicationStatus.LEASE_OFFERED

    acc = apps.accept_lease_offer(offer_id, CARD)
    assert acc.ok, acc.message
    lease = acc.data
    assert lease.status == LeaseStatus.ACTIVE
    assert lease.monthly_rent == 1450.0
    assert lease.renewal_number == 0
    assert lease.lease_offer_id == offer_id

    tenant = db_session.get(Tenant, acc.metadata["tenant_id"])
    assert tenant.prospect_id == prid
    assert tenant.is_active
    assert lease.tenant_id == tenant.id

    deposit = db_session.get(SecurityDeposit, acc.metadata["security_deposit_id"])
    assert deposit.status == DepositStatus.HELD
    assert deposit.amount == 1450.0
    assert deposit.in_investment_pool
    assert deposit.date_received == date.today()
    assert deposit.pool_entry_date == lease.start_date == date.today() + timedelta(days=14)
    assert deposit.transaction_reference == "txn-1"

    offer = db_session.get(LeaseOffer, offer_id)
    assert offer.status == LeaseOfferStatus.ACCEPTED
    assert offer.converted_lease_id == lease.id
    assert offer.responded_on is not None
    assert db_session.get(RentalApplication, app_id).status == ApplicationStatus.LEASE_ACCEPTED
    assert db_session.get(ProspectiveTenant, prid).status == ProspectStatus.CONVERTED_TO_TENANT
    assert db_session.get(Property, pid).status == PropertyStatus.OCCUPIED

    offer_audit = audit_history(db_session, org_id=actor.org_id, entity_type="LeaseOffer", entity_id=offer_id)
    assert [(h.from_status, h.to_status) for h in offer_audit] == [(None, "Pending"), ("Pending", "Accepted")]
    assert offer_audit[-1].action == "AcceptLeaseOffer"

    notes = NoteService(db_session, actor).list_notes("Lease", lease.id)
    assert len(notes) == 1
    assert "Move-in pending" in notes[0].content

    assert events.LEASE_OFFER_GENERATED in notifier.events()
    assert notifier.events()[-1] == events.LEASE_OFFER_ACCEPTED


def test_offer_denies_all_competitors(db_session, apps, notifier, make_property, make_prospect):
    pid = make_property()
    competitors = [submit(apps, make_prospect(), pid) for _ in range(3)]
    winner, _, _ = _approved(apps, make_property, make_prospect, pid=pid)
    apps.mark_under_review(competitors[1])

    gen = apps.generate_lease_offer(winner, offer_terms())
    assert gen.ok, gen.message
    assert gen.metadata["competing_denied"] == 3
    assert sorted(gen.metadata["denied_application_ids"]) == sorted(competitors)
    assert gen.message == "Lease offer generated successfully. 3 competing application(s) denied."

    for cid in competitors:
        row = db_session.get(RentalApplication, cid)
        assert row.status == ApplicationStatus.DENIED
        assert row.denial_reason == COMPETITOR_DENIAL_REASON
        assert db_session.get(ProspectiveTenant, row.prospect_id).status == ProspectStatus.DENIED

    assert notifier.events().count(events.APPLICATION_DENIED) == 3
    assert db_session.get(Property, pid).status == PropertyStatus.LEASE_PENDING


def test_offer_requires_approved_application(apps, make_property, make_prospect):
    app_id = submit(apps, make_prospect(), make_property())

    res = apps.generate_lease_offer(app_id, offer_terms())
    assert not res.ok
    assert res.message == "Application must be Approved to generate a lease offer. Current status: Submitted"


def test_offer_terms_are_validated_together(db_session, apps, make_property, make_prospect):
    app_id, pid, _ = _approved(apps, make_property, make_prospect)
    yesterday = date.today() - timedelta(days=1)

    res = apps.generate_lease_offer(
        app_id,
        LeaseOfferTerms(start_date=yesterday, end_date=yesterday - timedelta(days=5), monthly_rent=0, security_deposit=100),
    )
    assert not res.ok
    assert res.errors == [
        "End date must be after start date",
        "Start date cannot be in the past",
        "Invalid rent or deposit amount",
    ]
    assert db_session.get(RentalApplication, app_id).status == ApplicationStatus.APPROVED
    assert db_session.scalar(select(func.count(LeaseOffer.id)).where(LeaseOffer.property_id == pid)) == 0


def test_accept_twice_is_rejected(apps, make_property, make_prospect):
    app_id, _, _ = _approved(apps, make_property, make_prospect)
    offer_id = apps.generate_lease_offer(app_id, offer_terms()).data.id

    assert apps.accept_lease_offer(offer_id, CARD).ok
    again = apps.accept_lease_offer(offer_id, CARD)
    assert not again.ok
    assert again.message == "Lease offer is not pending. Current status: Accepted"


def test_accept_requires_payment_method(db_session, apps, make_property, make_prospect):
    app_id, _, prid = _approved(apps, make_property, make_prospect)
    offer_id = apps.generate_lease_offer(app_id, offer_terms()).data.id

    res = apps.accept_lease_offer(offer_id, LeaseOfferAcceptance(deposit_payment_method="  "))
    assert not res.ok
    assert res.message == "Deposit payment method is required"
    assert db_session.scalar(select(Tenant.id).where(Tenant.prospect_id == prid)) is None
    assert db_session.get(LeaseOffer, offer_id).status == LeaseOfferStatus.PENDING


def test_accept_after_expiry_fails_then_expire_frees_property(db_session, apps, make_property, make_prospect):
    app_id, pid, prid = _approved(apps, make_property, make_prospect)
    offer_id = apps.generate_lease_offer(app_id, offer_terms()).data.id
    _lapse(db_session, offer_id)

    res = apps.accept_lease_offer(offer_id, CARD)
    assert not res.ok
    assert "expired" in res.message
    assert db_session.scalar(select(Tenant.id).where(Tenant.prospect_id == prid)) is None

    exp = apps.expire_lease_offer(offer_id)
    assert exp.ok, exp.message
    assert db_session.get(LeaseOffer, offer_id).status == LeaseOfferStatus.EXPIRED
    assert db_session.get(RentalApplication, app_id).status == ApplicationStatus.EXPIRED
    assert db_session.get(ProspectiveTenant, prid).status == ProspectStatus.LEASE_DECLINED
    assert db_session.get(Property, pid).status == PropertyStatus.AVAILABLE


def test_expire_before_deadline_is_rejected(apps, make_property, make_prospect):
    app_id, _, _ = _approved(apps, make_property, make_prospect)
    offer_id = apps.generate_lease_offer(app_id, offer_terms()).data.id

    res = apps.expire_lease_offer(offer_id)
    assert not res.ok
    assert res.message == "Lease offer has not expired yet"


def test_decline_offer(db_session, actor, apps, notifier, make_property, make_prospect):
    app_id, pid, prid = _approved(apps, make_property, make_prospect)
    offer_id = apps.generate_lease_offer(app_id, offer_terms()).data.id

    assert apps.decline_lease_offer(offer_id, "").message == "Decline reason is required"

    res = apps.decline_lease_offer(offer_id, " Rent too high ")
    assert res.ok, res.message
    offer = db_session.get(LeaseOffer, offer_id)
    assert offer.status == LeaseOfferStatus.DECLINED
    assert offer.response_notes == "Rent too high"
    assert db_session.get(RentalApplication, app_id).status == ApplicationStatus.LEASE_DECLINED
    assert db_session.get(ProspectiveTenant, prid).status == ProspectStatus.LEASE_DECLINED
    assert db_session.get(Property, pid).status == PropertyStatus.AVAILABLE

    prop_audit = audit_history(db_session, org_id=actor.org_id, entity_type="Property", entity_id=pid)
    assert prop_audit[-1].action == "ReconcilePropertyStatus"
    assert prop_audit[-1].to_status == "Available"
    assert events.LEASE_OFFER_DECLINED in notifier.events()


def test_unknown_offer_is_not_found(apps):
    res = apps.accept_lease_offer(987654, CARD)
    assert res.kind == NOT_FOUND
    assert res.message == "Lease offer not found"


def test_converted_prospect_cannot_apply_again(apps, make_property, make_prospect):
    app_id, _, prid = _approved(apps, make_property, make_prospect)
    offer_id = apps.generate_lease_offer(app_id, offer_terms()).data.id
    apps.accept_lease_offer(offer_id, CARD)

    res = apps.submit_application(ApplicationSubmission(prospect_id=prid, property_id=make_property()))
    assert not res.ok
    assert "Prospect has already been converted to a tenant" in res.errors


def test_occupied_property_rejects_new_offer(db_session, apps, make_property, make_prospect):
    pid = make_property()
    late = submit(apps, make_prospect(), pid)
    approve(apps, late)

    # occupied through another channel after the application was approved
    prop = db_session.get(Property, pid)
    prop.status = PropertyStatus.OCCUPIED
    db_session.commit()

    res = apps.generate_lease_offer(late, offer_terms())
    assert not res.ok
    assert res.message == "Property is already occupied"


def test_concurrent_offers_on_one_property_only_one_wins(db_session, actor, make_property, make_prospect):
    pid = make_property()
    setup = ApplicationWorkflowService(db_session, actor)
    first = submit(setup, make_prospect(), pid)
    second = submit(setup, make_prospect(), pid)
    approve(setup, first)
    approve(setup, second)

    slow_db = SessionLocal()
    fast_db = SessionLocal()
    try:
        slow = ApplicationWorkflowService(slow_db, actor)
        fast = ApplicationWorkflowService(fast_db, actor)

        # the slow worker has already read the rows it is about to change
        assert slow_db.get(Property, pid) is not None
        assert slow_db.get(RentalApplication, second).status == ApplicationStatus.APPROVED

        won = fast.generate_lease_offer(first, offer_terms())
        assert won.ok, won.message
        assert won.metadata["denied_application_ids"] == [second]

        lost = slow.generate_lease_offer(second, offer_terms())
        assert not lost.ok
        # either the version check or the re-read Denied status stops it
        assert lost.kind in (FAULT, VALIDATION)
    finally:
        slow_db.close()
        fast_db.close()

    offers = db_session.scalars(select(LeaseOffer).where(LeaseOffer.property_id == pid)).all()
    assert [o.rental_application_id for o in offers] == [first]
    assert db_session.get(RentalApplication, second).status == ApplicationStatus.DENIED
