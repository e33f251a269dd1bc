# backend/tests/flows.py
"""Plain helpers that drive workflows into a given state (shared by test modules)."""
from __future__ import annotations

import uuid
from datetime import date, timedelta

from leaseflow.auth import Principal
from leaseflow.domain.states import ScreeningResult
from leaseflow.models import AppUser, Organization, OrgMembership
from leaseflow.schemas import (
    ApplicationSubmission,
    LeaseOfferAcceptance,
    LeaseOfferTerms,
    ScreeningResults,
)
from leaseflow.services.application_workflow import ApplicationWorkflowService


def make_org_actor(db, *, role: str = "owner", application_expiration_days: int | None = None) -> Principal:
    slug = f"t-{uuid.uuid4().hex[:10]}"
    org = Organization(slug=slug, name=slug, application_expiration_days=application_expiration_days)
    user = AppUser(email=f"{slug}@t.local", display_name=slug)
    db.add_all([org, user])
    db.commit()
    db.add(OrgMembership(org_id=org.id, user_id=user.id, role=role))
    db.commit()
    return Principal(org_id=int(org.id), org_slug=slug, user_id=int(user.id), email=user.email, role=role)


def offer_terms(*, start_in_days: int = 14, rent: float = 1500.0, deposit: float = 1500.0) -> LeaseOfferTerms:
    start = date.today() + timedelta(days=start_in_days)
    return LeaseOfferTerms(
        start_date=start,
        end_date=start + timedelta(days=365),
        monthly_rent=rent,
        security_deposit=deposit,
    )


def submit(apps: ApplicationWorkflowService, prospect_id: int, property_id: int, *, fee_paid: bool = True) -> int:
    res = apps.submit_application(
        ApplicationSubmission(
            prospect_id=prospect_id,
            property_id=property_id,
            application_fee=50.0,
            application_fee_paid=fee_paid,
            monthly_income=5200.0,
        )
    )
    assert res.ok, res.message
    return int(res.data.id)


def approve(apps: ApplicationWorkflowService, app_id: int, result: ScreeningResult = ScreeningResult.PASSED) -> None:
    r1 = apps.initiate_screening(app_id, request_background_check=True, request_credit_check=True)
    assert r1.ok, r1.message
    r2 = apps.complete_screening(
        app_id,
        ScreeningResults(
            background_check_passed=True,
            credit_check_passed=True,
            credit_score=720,
            overall_result=result,
        ),
    )
    assert r2.ok, r2.message
    r3 = apps.approve_application(app_id)
    assert r3.ok, r3.message


def lease_for_new_tenant(apps: ApplicationWorkflowService, prospect_id: int, property_id: int, **terms) -> int:
    """Drives submit -> approve -> offer -> accept and returns the lease id."""
    app_id = submit(apps, prospect_id, property_id)
    approve(apps, app_id)
    offer = apps.generate_lease_offer(app_id, offer_terms(**terms))
    assert offer.ok, offer.message
    accepted = apps.accept_lease_offer(int(offer.data.id), LeaseOfferAcceptance(deposit_payment_method="Card"))
    assert accepted.ok, accepted.message
    return int(accepted.data.id)
