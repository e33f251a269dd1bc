# backend/leaseflow/services/application_workflow.py
"""
Rental application lifecycle:

  Submitted -> UnderReview -> Screening -> Approved -> LeaseOffered -> LeaseAccepted
                                  (Denied / Withdrawn / Expired / LeaseDeclined close it)

Every public method runs as one UnitOfWork and returns a WorkflowResult.
Property and prospect statuses move in the same unit as the application;
closing an application or offer reconciles the property's availability.
"""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..config import settings
from ..domain.audit import audit_history, audit_row_to_dict, record_transition
from ..domain.results import NOT_FOUND, VALIDATION, WorkflowResult
from ..domain.states import (
    APPLICATION_TRANSITIONS,
    APPROVABLE_SCREENING_RESULTS,
    DENY_BLOCKED_STATUSES,
    OPEN_APPLICATION_STATUSES,
    UNDECIDED_APPLICATION_STATUSES,
    ApplicationStatus,
    DepositStatus,
    LeaseOfferStatus,
    LeaseStatus,
    PropertyStatus,
    ProspectStatus,
    ScreeningResult,
)
from ..models import (
    ApplicationScreening,
    Lease,
    LeaseOffer,
    Organization,
    Property,
    ProspectiveTenant,
    RentalApplication,
    SecurityDeposit,
    Tenant,
)
from ..schemas import ApplicationSubmission, LeaseOfferAcceptance, LeaseOfferTerms, ScreeningResults
from . import notifications as events
from .notes import NoteService
from .notifications import NotificationService
from .reconciliation import reconcile_property_status
from .transitions import change_status, record_creation, stamp
from .unit_of_work import UnitOfWork

log = logging.getLogger("leaseflow.workflow.application")

COMPETITOR_DENIAL_REASON = "Property leased to another applicant"

APPLICATION = "RentalApplication"
PROSPECT = "ProspectiveTenant"
PROPERTY = "Property"
OFFER = "LeaseOffer"
SCREENING = "ApplicationScreening"


def _utcnow() -> datetime:
    return datetime.utcnow()


def _blank(s: Optional[str]) -> bool:
    return not (s or "").strip()


class ApplicationWorkflowService:
    def __init__(
        self,
        db: Session,
        actor: Principal,
        *,
        uow: Optional[UnitOfWork] = None,
        notes: Optional[NoteService] = None,
        notifier: Optional[NotificationService] = None,
    ):
        self.db = db
        self.actor = actor
        self.uow = uow or UnitOfWork(db, notifier=notifier)
        self.notes = notes or NoteService(db, actor)

    @property
    def org_id(self) -> int:
        return self.actor.active_organization_id()

    # -------------------------
    # lookups (org scoped)
    # -------------------------
    def _get_application(self, application_id: int) -> Optional[RentalApplication]:
        return self.db.scalar(
            select(RentalApplication).where(
                RentalApplication.id == int(application_id),
                RentalApplication.org_id == self.org_id,
                RentalApplication.is_deleted.is_(False),
            )
        )

    def _get_prospect(self, prospect_id: int) -> Optional[ProspectiveTenant]:
        return self.db.scalar(
            select(ProspectiveTenant).where(
                ProspectiveTenant.id == int(prospect_id),
                ProspectiveTenant.org_id == self.org_id,
                ProspectiveTenant.is_deleted.is_(False),
            )
        )

    def _get_property(self, property_id: int) -> Optional[Property]:
        return self.db.scalar(
            select(Property).where(
                Property.id == int(property_id),
                Property.org_id == self.org_id,
                Property.is_deleted.is_(False),
            )
        )

    def _get_offer(self, offer_id: int) -> Optional[LeaseOffer]:
        return self.db.scalar(
            select(LeaseOffer).where(
                LeaseOffer.id == int(offer_id),
                LeaseOffer.org_id == self.org_id,
                LeaseOffer.is_deleted.is_(False),
            )
        )

    def _get_screening(self, application_id: int) -> Optional[ApplicationScreening]:
        return self.db.scalar(
            select(ApplicationScreening).where(
                ApplicationScreening.rental_application_id == int(application_id),
                ApplicationScreening.org_id == self.org_id,
            )
        )

    def _application_expiration_days(self) -> int:
        org = self.db.get(Organization, self.org_id)
        if org is not None and org.application_expiration_days is not None:
            return int(org.application_expiration_days)
        return int(settings.application_expiration_days)

    def _has_active_application_for_identification(self, number: str, state: str) -> bool:
        q = (
            select(RentalApplication.id)
            .join(ProspectiveTenant, ProspectiveTenant.id == RentalApplication.prospect_id)
            .where(
                RentalApplication.org_id == self.org_id,
                RentalApplication.is_deleted.is_(False),
                RentalApplication.status.in_(list(OPEN_APPLICATION_STATUSES)),
                ProspectiveTenant.identification_number == number,
                ProspectiveTenant.identification_state == state,
            )
            .limit(1)
        )
        return self.db.scalar(q) is not None

    def _is_tenant(self, prospect: ProspectiveTenant) -> bool:
        if prospect.status == ProspectStatus.CONVERTED_TO_TENANT:
            return True
        return self.db.scalar(select(Tenant.id).where(Tenant.prospect_id == prospect.id).limit(1)) is not None

    # -------------------------
    # shared mutations
    # -------------------------
    def _set_prospect(self, prospect: Optional[ProspectiveTenant], to_status: ProspectStatus, action: str, reason: str | None = None) -> None:
        if prospect is None:
            return
        change_status(
            self.db, actor=self.actor, entity=prospect, entity_type=PROSPECT, to_status=to_status, action=action, reason=reason
        )

    def _decide(self, app: RentalApplication, *, reason: Optional[str] = None) -> None:
        app.decided_on = _utcnow()
        app.decision_by = self.actor.current_user_id()
        if reason is not None:
            app.denial_reason = reason

    def _close_pending_offers(self, app: RentalApplication, *, action: str, reason: str) -> list[int]:
        """Pending offers die with their application so they cannot hold the property."""
        closed: list[int] = []
        offers = self.db.scalars(
            select(LeaseOffer).where(
                LeaseOffer.rental_application_id == app.id,
                LeaseOffer.org_id == self.org_id,
                LeaseOffer.status == LeaseOfferStatus.PENDING,
            )
        ).all()
        for offer in offers:
            change_status(
                self.db,
                actor=self.actor,
                entity=offer,
                entity_type=OFFER,
                to_status=LeaseOfferStatus.DECLINED,
                action=action,
                reason=reason,
            )
            offer.responded_on = _utcnow()
            offer.response_notes = reason
            closed.append(int(offer.id))
        return closed

    def _deny(self, app: RentalApplication, *, reason: str, action: str, metadata: dict[str, Any] | None = None) -> None:
        self._close_pending_offers(app, action=action, reason=reason)
        change_status(
            self.db,
            actor=self.actor,
            entity=app,
            entity_type=APPLICATION,
            to_status=ApplicationStatus.DENIED,
            action=action,
            reason=reason,
            metadata=metadata,
        )
        self._decide(app, reason=reason)

    # -------------------------
    # Submit
    # -------------------------
    def submit_application(self, submission: ApplicationSubmission) -> WorkflowResult[RentalApplication]:
        return self.uow.execute(lambda: self._submit(submission), name="SubmitApplication")

    def _submit(self, s: ApplicationSubmission) -> WorkflowResult[RentalApplication]:
        errors: list[str] = []
        missing = False

        prospect = self._get_prospect(s.prospect_id)
        if prospect is None:
            errors.append("Prospect not found")
            missing = True
        elif self._is_tenant(prospect):
            errors.append("Prospect has already been converted to a tenant")

        prop = self._get_property(s.property_id)
        if prop is None:
            errors.append("Property not found")
            missing = True
        elif prop.status == PropertyStatus.OCCUPIED:
            errors.append("Property is already occupied")

        if prospect is not None and prospect.identification_number and prospect.identification_state:
            if self._has_active_application_for_identification(
                prospect.identification_number, prospect.identification_state
            ):
                errors.append("An active application already exists for this identification")

        if errors:
            return WorkflowResult.fail(*errors, kind=NOT_FOUND if missing else VALIDATION)

        now = _utcnow()
        app = RentalApplication(
            org_id=self.org_id,
            prospect_id=prospect.id,
            property_id=prop.id,
            status=ApplicationStatus.SUBMITTED,
            applied_on=now,
            expires_on=now + timedelta(days=self._application_expiration_days()),
            **s.applicant_fields(),
        )
        if app.application_fee_paid:
            app.application_fee_paid_on = now
        stamp(app, self.actor, created=True)
        self.db.add(app)
        self.db.flush()

        record_creation(self.db, actor=self.actor, entity=app, entity_type=APPLICATION, action="SubmitApplication")

        if prop.status == PropertyStatus.AVAILABLE:
            change_status(
                self.db,
                actor=self.actor,
                entity=prop,
                entity_type=PROPERTY,
                to_status=PropertyStatus.APPLICATION_PENDING,
                action="SubmitApplication",
                reason=f"Application {app.id} submitted",
            )

        prospect.interested_property_id = prop.id
        self._set_prospect(prospect, ProspectStatus.APPLIED, "SubmitApplication")

        self.uow.notify(
            events.APPLICATION_SUBMITTED,
            org_id=self.org_id,
            entity_type=APPLICATION,
            entity_id=app.id,
            property_id=prop.id,
            prospect_id=prospect.id,
        )
        return WorkflowResult.success(app, "Application submitted successfully")

    # -------------------------
    # Review + screening
    # -------------------------
    def mark_under_review(self, application_id: int) -> WorkflowResult[RentalApplication]:
        return self.uow.execute(lambda: self._mark_under_review(application_id), name="MarkUnderReview")

    def _mark_under_review(self, application_id: int) -> WorkflowResult[RentalApplication]:
        app = self._get_application(application_id)
        if app is None:
            return WorkflowResult.not_found("Application")

        target = ApplicationStatus.UNDER_REVIEW
        if not APPLICATION_TRANSITIONS.is_valid_transition(app.status, target):
            return WorkflowResult.fail(APPLICATION_TRANSITIONS.invalid_transition_reason(app.status, target))

        change_status(self.db, actor=self.actor, entity=app, entity_type=APPLICATION, to_status=target, action="MarkUnderReview")
        return WorkflowResult.success(app, "Application marked as under review")

    def initiate_screening(
        self, application_id: int, *, request_background_check: bool = True, request_credit_check: bool = True
    ) -> WorkflowResult[ApplicationScreening]:
        return self.uow.execute(
            lambda: self._initiate_screening(application_id, request_background_check, request_credit_check),
            name="InitiateScreening",
        )

    def _initiate_screening(self, application_id: int, want_background: bool, want_credit: bool) -> WorkflowResult[ApplicationScreening]:
        app = self._get_application(application_id)
        if app is None:
            return WorkflowResult.not_found("Application")

        if app.status == ApplicationStatus.SUBMITTED:
            change_status(
                self.db,
                actor=self.actor,
                entity=app,
                entity_type=APPLICATION,
                to_status=ApplicationStatus.UNDER_REVIEW,
                action="AutoTransition-InitiateScreening",
                reason="Moved to review when screening was initiated",
            )

        if app.status != ApplicationStatus.UNDER_REVIEW:
            return WorkflowResult.fail(
                APPLICATION_TRANSITIONS.invalid_transition_reason(app.status, ApplicationStatus.SCREENING)
            )
        if not app.application_fee_paid:
            return WorkflowResult.fail("Application fee must be paid before initiating screening")
        if self._get_screening(app.id) is not None:
            return WorkflowResult.fail("Screening already exists for this application")

        now = _utcnow()
        screening = ApplicationScreening(
            org_id=self.org_id,
            rental_application_id=app.id,
            background_check_requested=bool(want_background),
            background_check_requested_on=now if want_background else None,
            credit_check_requested=bool(want_credit),
            credit_check_requested_on=now if want_credit else None,
            overall_result=ScreeningResult.PENDING,
        )
        stamp(screening, self.actor, created=True)
        self.db.add(screening)
        self.db.flush()
        record_creation(
            self.db, actor=self.actor, entity=screening, entity_type=SCREENING, action="InitiateScreening", attr="overall_result"
        )

        change_status(
            self.db,
            actor=self.actor,
            entity=app,
            entity_type=APPLICATION,
            to_status=ApplicationStatus.SCREENING,
            action="InitiateScreening",
            metadata={"background_check": bool(want_background), "credit_check": bool(want_credit)},
        )
        self._set_prospect(self._get_prospect(app.prospect_id), ProspectStatus.SCREENING, "InitiateScreening")
        return WorkflowResult.success(screening, "Screening initiated successfully")

    def complete_screening(self, application_id: int, results: ScreeningResults) -> WorkflowResult[ApplicationScreening]:
        return self.uow.execute(lambda: self._complete_screening(application_id, results), name="CompleteScreening")

    def _complete_screening(self, application_id: int, results: ScreeningResults) -> WorkflowResult[ApplicationScreening]:
        app = self._get_application(application_id)
        if app is None:
            return WorkflowResult.not_found("Application")
        if app.status != ApplicationStatus.SCREENING:
            return WorkflowResult.fail(
                f"Application must be in Screening status to complete screening. Current status: {app.status.value}"
            )

        screening = self._get_screening(app.id)
        if screening is None:
            return WorkflowResult.fail("Screening record not found")

        now = _utcnow()
        if results.background_check_passed is not None:
            screening.background_check_passed = results.background_check_passed
            screening.background_check_completed_on = now
        if results.background_check_notes:
            screening.background_check_notes = results.background_check_notes

        if results.credit_check_passed is not None:
            screening.credit_check_passed = results.credit_check_passed
            screening.credit_check_completed_on = now
        if results.credit_score is not None:
            screening.credit_score = results.credit_score
        if results.credit_check_notes:
            screening.credit_check_notes = results.credit_check_notes

        screening.result_notes = results.result_notes
        change_status(
            self.db,
            actor=self.actor,
            entity=screening,
            entity_type=SCREENING,
            to_status=results.overall_result,
            action="CompleteScreening",
            reason=results.result_notes,
            attr="overall_result",
        )
        return WorkflowResult.success(screening, "Screening results recorded")

    # -------------------------
    # Decisions
    # -------------------------
    def approve_application(self, application_id: int) -> WorkflowResult[RentalApplication]:
        return self.uow.execute(lambda: self._approve(application_id), name="ApproveApplication")

    def _approve(self, application_id: int) -> WorkflowResult[RentalApplication]:
        app = self._get_application(application_id)
        if app is None:
            return WorkflowResult.not_found("Application")
        if app.status != ApplicationStatus.SCREENING:
            return WorkflowResult.fail(
                APPLICATION_TRANSITIONS.invalid_transition_reason(app.status, ApplicationStatus.APPROVED)
            )

        screening = self._get_screening(app.id)
        if screening is None:
            return WorkflowResult.fail("Screening must be completed before approval")
        if screening.overall_result not in APPROVABLE_SCREENING_RESULTS:
            return WorkflowResult.fail(
                f"Cannot approve application with screening result: {screening.overall_result.value}"
            )

        change_status(
            self.db,
            actor=self.actor,
            entity=app,
            entity_type=APPLICATION,
            to_status=ApplicationStatus.APPROVED,
            action="ApproveApplication",
            metadata={"screening_result": screening.overall_result.value},
        )
        self._decide(app)
        self._set_prospect(self._get_prospect(app.prospect_id), ProspectStatus.APPROVED, "ApproveApplication")

        self.uow.notify(events.APPLICATION_APPROVED, org_id=self.org_id, entity_type=APPLICATION, entity_id=app.id)
        return WorkflowResult.success(app, "Application approved successfully")

    def deny_application(self, application_id: int, reason: str) -> WorkflowResult[RentalApplication]:
        return self.uow.execute(lambda: self._deny_application(application_id, reason), name="DenyApplication")

    def _deny_application(self, application_id: int, reason: str) -> WorkflowResult[RentalApplication]:
        if _blank(reason):
            return WorkflowResult.fail("Denial reason is required")

        app = self._get_application(application_id)
        if app is None:
            return WorkflowResult.not_found("Application")
        if app.status in DENY_BLOCKED_STATUSES:
            return WorkflowResult.fail(f"Application is already {app.status.value}")

        reason = reason.strip()
        self._deny(app, reason=reason, action="DenyApplication")
        self._set_prospect(self._get_prospect(app.prospect_id), ProspectStatus.DENIED, "DenyApplication", reason)

        reconcile_property_status(
            self.db, actor=self.actor, property_id=app.property_id, exclude_application_id=app.id
        )

        self.uow.notify(
            events.APPLICATION_DENIED, org_id=self.org_id, entity_type=APPLICATION, entity_id=app.id, reason=reason
        )
        return WorkflowResult.success(app, "Application denied")

    def withdraw_application(self, application_id: int, reason: str) -> WorkflowResult[RentalApplication]:
        return self.uow.execute(lambda: self._withdraw(application_id, reason), name="WithdrawApplication")

    def _withdraw(self, application_id: int, reason: str) -> WorkflowResult[RentalApplication]:
        if _blank(reason):
            return WorkflowResult.fail("Withdrawal reason is required")

        app = self._get_application(application_id)
        if app is None:
            return WorkflowResult.not_found("Application")
        if app.status not in OPEN_APPLICATION_STATUSES:
            return WorkflowResult.fail(f"Cannot withdraw application in {app.status.value} status")

        reason = reason.strip()
        closed = self._close_pending_offers(app, action="WithdrawApplication", reason=f"Application withdrawn: {reason}")
        change_status(
            self.db,
            actor=self.actor,
            entity=app,
            entity_type=APPLICATION,
            to_status=ApplicationStatus.WITHDRAWN,
            action="WithdrawApplication",
            reason=reason,
        )
        self._decide(app, reason=reason)
        self._set_prospect(self._get_prospect(app.prospect_id), ProspectStatus.WITHDRAWN, "WithdrawApplication", reason)

        reconcile_property_status(
            self.db,
            actor=self.actor,
            property_id=app.property_id,
            exclude_application_id=app.id,
            exclude_offer_id=closed[0] if closed else None,
        )

        self.uow.notify(events.APPLICATION_WITHDRAWN, org_id=self.org_id, entity_type=APPLICATION, entity_id=app.id)
        return WorkflowResult.success(app, "Application withdrawn")

    # -------------------------
    # Lease offers
    # -------------------------
    def generate_lease_offer(self, application_id: int, terms: LeaseOfferTerms) -> WorkflowResult[LeaseOffer]:
        return self.uow.execute(lambda: self._generate_offer(application_id, terms), name="GenerateLeaseOffer")

    def _generate_offer(self, application_id: int, terms: LeaseOfferTerms) -> WorkflowResult[LeaseOffer]:
        app = self._get_application(application_id)
        if app is None:
            return WorkflowResult.not_found("Application")
        if app.status != ApplicationStatus.APPROVED:
            return WorkflowResult.fail(
                f"Application must be Approved to generate a lease offer. Current status: {app.status.value}"
            )

        prop = self._get_property(app.property_id)
        if prop is None:
            return WorkflowResult.not_found("Property")
        if prop.status == PropertyStatus.OCCUPIED:
            return WorkflowResult.fail("Property is already occupied")

        errors: list[str] = []
        if terms.start_date >= terms.end_date:
            errors.append("End date must be after start date")
        if terms.start_date < date.today():
            errors.append("Start date cannot be in the past")
        if terms.monthly_rent <= 0 or terms.security_deposit < 0:
            errors.append("Invalid rent or deposit amount")
        if errors:
            return WorkflowResult.fail(*errors)

        now = _utcnow()
        offer = LeaseOffer(
            org_id=self.org_id,
            rental_application_id=app.id,
            property_id=prop.id,
            prospect_id=app.prospect_id,
            start_date=terms.start_date,
            end_date=terms.end_date,
            monthly_rent=float(terms.monthly_rent),
            security_deposit=float(terms.security_deposit),
            terms=terms.terms,
            notes=terms.notes,
            offered_on=now,
            expires_on=now + timedelta(days=settings.lease_offer_expiration_days),
            status=LeaseOfferStatus.PENDING,
        )
        stamp(offer, self.actor, created=True)
        self.db.add(offer)
        self.db.flush()
        record_creation(self.db, actor=self.actor, entity=offer, entity_type=OFFER, action="GenerateLeaseOffer")

        change_status(
            self.db,
            actor=self.actor,
            entity=app,
            entity_type=APPLICATION,
            to_status=ApplicationStatus.LEASE_OFFERED,
            action="GenerateLeaseOffer",
            metadata={"lease_offer_id": offer.id},
        )
        self._set_prospect(self._get_prospect(app.prospect_id), ProspectStatus.LEASE_OFFERED, "GenerateLeaseOffer")

        change_status(
            self.db,
            actor=self.actor,
            entity=prop,
            entity_type=PROPERTY,
            to_status=PropertyStatus.LEASE_PENDING,
            action="GenerateLeaseOffer",
            reason=f"Lease offer {offer.id} generated",
        )
        # always write the row so a concurrent offer on this property fails its version check
        stamp(prop, self.actor)
        self.db.add(prop)

        self.db.flush()
        competitors = self.db.scalars(
            select(RentalApplication)
            .where(
                RentalApplication.org_id == self.org_id,
                RentalApplication.property_id == prop.id,
                RentalApplication.id != app.id,
                RentalApplication.is_deleted.is_(False),
                RentalApplication.status.in_(list(OPEN_APPLICATION_STATUSES)),
            )
            .order_by(RentalApplication.id.asc())
        ).all()

        denied_ids: list[int] = []
        for competitor in competitors:
            self._deny(
                competitor,
                reason=COMPETITOR_DENIAL_REASON,
                action="DenyCompetingApplication",
                metadata={"winning_application_id": app.id, "lease_offer_id": offer.id},
            )
            if competitor.prospect_id != app.prospect_id:
                self._set_prospect(
                    self._get_prospect(competitor.prospect_id),
                    ProspectStatus.DENIED,
                    "DenyCompetingApplication",
                    COMPETITOR_DENIAL_REASON,
                )
            denied_ids.append(int(competitor.id))

        self.uow.notify(
            events.LEASE_OFFER_GENERATED,
            org_id=self.org_id,
            entity_type=OFFER,
            entity_id=offer.id,
            application_id=app.id,
            competing_denied=len(denied_ids),
        )
        for cid in denied_ids:
            self.uow.notify(
                events.APPLICATION_DENIED,
                org_id=self.org_id,
                entity_type=APPLICATION,
                entity_id=cid,
                reason=COMPETITOR_DENIAL_REASON,
            )

        return WorkflowResult.success(
            offer,
            f"Lease offer generated successfully. {len(denied_ids)} competing application(s) denied.",
            competing_denied=len(denied_ids),
            denied_application_ids=denied_ids,
        )

    def accept_lease_offer(self, offer_id: int, acceptance: LeaseOfferAcceptance) -> WorkflowResult[Lease]:
        return self.uow.execute(lambda: self._accept_offer(offer_id, acceptance), name="AcceptLeaseOffer")

    def _accept_offer(self, offer_id: int, acceptance: LeaseOfferAcceptance) -> WorkflowResult[Lease]:
        offer = self._get_offer(offer_id)
        if offer is None:
            return WorkflowResult.not_found("Lease offer")
        if offer.status != LeaseOfferStatus.PENDING:
            return WorkflowResult.fail(f"Lease offer is not pending. Current status: {offer.status.value}")

        now = _utcnow()
        if offer.expires_on < now:
            return WorkflowResult.fail("Lease offer has expired")

        app = self._get_application(offer.rental_application_id)
        prospect = self._get_prospect(offer.prospect_id)
        prop = self._get_property(offer.property_id)
        if app is None or prospect is None or prop is None:
            return WorkflowResult.not_found("Lease offer application, prospect or property")
        if app.status != ApplicationStatus.LEASE_OFFERED:
            return WorkflowResult.fail(
                APPLICATION_TRANSITIONS.invalid_transition_reason(app.status, ApplicationStatus.LEASE_ACCEPTED)
            )
        if prop.status == PropertyStatus.OCCUPIED:
            return WorkflowResult.fail("Property is already occupied")
        if _blank(acceptance.deposit_payment_method):
            return WorkflowResult.fail("Deposit payment method is required")

        tenant = Tenant(
            org_id=self.org_id,
            first_name=prospect.first_name,
            last_name=prospect.last_name,
            email=prospect.email,
            phone=prospect.phone,
            date_of_birth=prospect.date_of_birth,
            identification_number=prospect.identification_number or f"ID-{uuid.uuid4().hex[:8].upper()}",
            prospect_id=prospect.id,
            is_active=True,
        )
        stamp(tenant, self.actor, created=True)
        self.db.add(tenant)
        self.db.flush()
        record_transition(
            self.db,
            org_id=self.org_id,
            performed_by=self.actor.current_user_id(),
            entity_type="Tenant",
            entity_id=tenant.id,
            from_status=None,
            to_status="Active",
            action="AcceptLeaseOffer",
            metadata={"prospect_id": prospect.id},
        )

        lease = Lease(
            org_id=self.org_id,
            property_id=prop.id,
            tenant_id=tenant.id,
            lease_offer_id=offer.id,
            start_date=offer.start_date,
            end_date=offer.end_date,
            monthly_rent=offer.monthly_rent,
            security_deposit_amount=offer.security_deposit,
            terms=offer.terms,
            notes=offer.notes,
            status=LeaseStatus.ACTIVE,
            signed_on=now,
            renewal_number=0,
        )
        stamp(lease, self.actor, created=True)
        self.db.add(lease)
        self.db.flush()
        record_creation(self.db, actor=self.actor, entity=lease, entity_type="Lease", action="AcceptLeaseOffer")

        received = acceptance.deposit_payment_date or date.today()
        deposit = SecurityDeposit(
            org_id=self.org_id,
            lease_id=lease.id,
            tenant_id=tenant.id,
            amount=offer.security_deposit,
            date_received=received,
            payment_method=acceptance.deposit_payment_method.strip(),
            transaction_reference=acceptance.deposit_reference_number,
            status=DepositStatus.HELD,
            in_investment_pool=True,
            pool_entry_date=offer.start_date,
            notes=acceptance.deposit_notes,
        )
        stamp(deposit, self.actor, created=True)
        self.db.add(deposit)
        self.db.flush()
        record_creation(self.db, actor=self.actor, entity=deposit, entity_type="SecurityDeposit", action="AcceptLeaseOffer")

        change_status(
            self.db,
            actor=self.actor,
            entity=offer,
            entity_type=OFFER,
            to_status=LeaseOfferStatus.ACCEPTED,
            action="AcceptLeaseOffer",
            metadata={"lease_id": lease.id, "tenant_id": tenant.id},
        )
        offer.responded_on = now
        offer.converted_lease_id = lease.id

        change_status(
            self.db,
            actor=self.actor,
            entity=app,
            entity_type=APPLICATION,
            to_status=ApplicationStatus.LEASE_ACCEPTED,
            action="AcceptLeaseOffer",
        )
        self._set_prospect(prospect, ProspectStatus.CONVERTED_TO_TENANT, "AcceptLeaseOffer")
        change_status(
            self.db,
            actor=self.actor,
            entity=prop,
            entity_type=PROPERTY,
            to_status=PropertyStatus.OCCUPIED,
            action="AcceptLeaseOffer",
            reason=f"Lease {lease.id} created from offer {offer.id}",
        )

        if lease.start_date > date.today():
            self.notes.add_note("Lease", lease.id, f"Lease starts on {lease.start_date.isoformat()}. Move-in pending.")

        self.uow.notify(
            events.LEASE_OFFER_ACCEPTED,
            org_id=self.org_id,
            entity_type=OFFER,
            entity_id=offer.id,
            lease_id=lease.id,
            tenant_id=tenant.id,
        )
        return WorkflowResult.success(
            lease,
            "Lease offer accepted. Tenant and lease created.",
            tenant_id=tenant.id,
            security_deposit_id=deposit.id,
        )

    def decline_lease_offer(self, offer_id: int, reason: str) -> WorkflowResult[LeaseOffer]:
        return self.uow.execute(lambda: self._decline_offer(offer_id, reason), name="DeclineLeaseOffer")

    def _decline_offer(self, offer_id: int, reason: str) -> WorkflowResult[LeaseOffer]:
        if _blank(reason):
            return WorkflowResult.fail("Decline reason is required")

        offer = self._get_offer(offer_id)
        if offer is None:
            return WorkflowResult.not_found("Lease offer")
        if offer.status != LeaseOfferStatus.PENDING:
            return WorkflowResult.fail(f"Lease offer is not pending. Current status: {offer.status.value}")

        reason = reason.strip()
        self._close_offer(
            offer,
            offer_status=LeaseOfferStatus.DECLINED,
            application_status=ApplicationStatus.LEASE_DECLINED,
            action="DeclineLeaseOffer",
            reason=reason,
        )
        offer.response_notes = reason

        self.uow.notify(events.LEASE_OFFER_DECLINED, org_id=self.org_id, entity_type=OFFER, entity_id=offer.id)
        return WorkflowResult.success(offer, "Lease offer declined")

    def expire_lease_offer(self, offer_id: int) -> WorkflowResult[LeaseOffer]:
        return self.uow.execute(lambda: self._expire_offer(offer_id), name="ExpireLeaseOffer")

    def _expire_offer(self, offer_id: int) -> WorkflowResult[LeaseOffer]:
        offer = self._get_offer(offer_id)
        if offer is None:
            return WorkflowResult.not_found("Lease offer")
        if offer.status != LeaseOfferStatus.PENDING:
            return WorkflowResult.fail(f"Lease offer is not pending. Current status: {offer.status.value}")
        if offer.expires_on >= _utcnow():
            return WorkflowResult.fail("Lease offer has not expired yet")

        self._close_offer(
            offer,
            offer_status=LeaseOfferStatus.EXPIRED,
            application_status=ApplicationStatus.EXPIRED,
            action="ExpireLeaseOffer",
            reason="Offer expired",
        )

        self.uow.notify(events.LEASE_OFFER_EXPIRED, org_id=self.org_id, entity_type=OFFER, entity_id=offer.id)
        return WorkflowResult.success(offer, "Lease offer expired")

    def _close_offer(
        self,
        offer: LeaseOffer,
        *,
        offer_status: LeaseOfferStatus,
        application_status: ApplicationStatus,
        action: str,
        reason: str,
    ) -> None:
        change_status(
            self.db, actor=self.actor, entity=offer, entity_type=OFFER, to_status=offer_status, action=action, reason=reason
        )
        offer.responded_on = _utcnow()

        app = self._get_application(offer.rental_application_id)
        if app is not None and APPLICATION_TRANSITIONS.is_valid_transition(app.status, application_status):
            change_status(
                self.db,
                actor=self.actor,
                entity=app,
                entity_type=APPLICATION,
                to_status=application_status,
                action=action,
                reason=reason,
            )
        self._set_prospect(self._get_prospect(offer.prospect_id), ProspectStatus.LEASE_DECLINED, action, reason)

        reconcile_property_status(
            self.db,
            actor=self.actor,
            property_id=offer.property_id,
            exclude_application_id=offer.rental_application_id,
            exclude_offer_id=offer.id,
        )

    # -------------------------
    # Sweeps (scheduled)
    # -------------------------
    def expire_lapsed_lease_offers(self) -> WorkflowResult[int]:
        """Expires every Pending offer past its expiry, one unit of work per offer."""
        ids = list(
            self.db.scalars(
                select(LeaseOffer.id).where(
                    LeaseOffer.org_id == self.org_id,
                    LeaseOffer.is_deleted.is_(False),
                    LeaseOffer.status == LeaseOfferStatus.PENDING,
                    LeaseOffer.expires_on < _utcnow(),
                )
            ).all()
        )

        expired, failed = 0, []
        for oid in ids:
            res = self.expire_lease_offer(oid)
            if res.ok:
                expired += 1
            else:
                failed.append(f"LeaseOffer {oid}: {res.message}")

        log.info("lease_offers_expired", extra={"org_id": self.org_id, "count": expired})
        return WorkflowResult(ok=True, data=expired, errors=failed, message=f"{expired} lease offer(s) expired")

    def expire_stale_applications(self) -> WorkflowResult[int]:
        """Submitted/UnderReview/Screening applications past expires_on become Expired."""
        ids = list(
            self.db.scalars(
                select(RentalApplication.id).where(
                    RentalApplication.org_id == self.org_id,
                    RentalApplication.is_deleted.is_(False),
                    RentalApplication.status.in_(list(UNDECIDED_APPLICATION_STATUSES)),
                    RentalApplication.expires_on.is_not(None),
                    RentalApplication.expires_on < _utcnow(),
                )
            ).all()
        )

        expired, failed = 0, []
        for aid in ids:
            res = self.uow.execute(lambda aid=aid: self._expire_application(aid), name="ExpireApplication")
            if res.ok:
                expired += 1
            else:
                failed.append(f"RentalApplication {aid}: {res.message}")

        log.info("applications_expired", extra={"org_id": self.org_id, "count": expired})
        return WorkflowResult(ok=True, data=expired, errors=failed, message=f"{expired} application(s) expired")

    def _expire_application(self, application_id: int) -> WorkflowResult[RentalApplication]:
        app = self._get_application(application_id)
        if app is None:
            return WorkflowResult.not_found("Application")
        if app.status not in UNDECIDED_APPLICATION_STATUSES:
            return WorkflowResult.fail(f"Application is already {app.status.value}")

        reason = "Application expired without a decision"
        change_status(
            self.db,
            actor=self.actor,
            entity=app,
            entity_type=APPLICATION,
            to_status=ApplicationStatus.EXPIRED,
            action="ExpireApplication",
            reason=reason,
        )
        self._set_prospect(self._get_prospect(app.prospect_id), ProspectStatus.WITHDRAWN, "ExpireApplication", reason)
        reconcile_property_status(
            self.db, actor=self.actor, property_id=app.property_id, exclude_application_id=app.id
        )
        return WorkflowResult.success(app, "Application expired")

    # -------------------------
    # Read model
    # -------------------------
    def get_application_workflow_state(self, application_id: int) -> WorkflowResult[dict[str, Any]]:
        app = self._get_application(application_id)
        if app is None:
            return WorkflowResult.not_found("Application")

        offers = self.db.scalars(
            select(LeaseOffer)
            .where(LeaseOffer.rental_application_id == app.id, LeaseOffer.org_id == self.org_id)
            .order_by(LeaseOffer.offered_on.desc(), LeaseOffer.id.desc())
        ).all()
        history = audit_history(self.db, org_id=self.org_id, entity_type=APPLICATION, entity_id=app.id)

        state = {
            "application": app,
            "prospect": self._get_prospect(app.prospect_id),
            "property": self._get_property(app.property_id),
            "screening": self._get_screening(app.id),
            "lease_offers": list(offers),
            "audit_history": [audit_row_to_dict(r) for r in history],
            "valid_next_states": sorted(s.value for s in APPLICATION_TRANSITIONS.valid_next_states(app.status)),
        }
        return WorkflowResult.success(state)
