# backend/leaseflow/services/lease_workflow.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..config import settings
from ..domain.audit import audit_history, audit_row_to_dict
from ..domain.results import VALIDATION, WorkflowResult
from ..domain.states import (
    LEASE_TRANSITIONS,
    OCCUPYING_LEASE_STATUSES,
    DepositStatus,
    LeaseStatus,
    PropertyStatus,
)
from ..models import Lease, Property, SecurityDeposit, Tenant
from ..schemas import (
    DepositDeduction,
    DepositRefundIn,
    EarlyTermination,
    LeaseRenewal,
    MoveOutDetails,
    TerminationNotice,
)
from . import notifications as events
from .notes import NoteService
from .notifications import NotificationService
from .transitions import change_status, record_creation, stamp
from .unit_of_work import UnitOfWork

log = logging.getLogger("leaseflow.workflow.lease")

LEASE = "Lease"
PROPERTY = "Property"
DEPOSIT = "SecurityDeposit"

NOTICE_ALLOWED = frozenset({LeaseStatus.ACTIVE, LeaseStatus.MONTH_TO_MONTH, LeaseStatus.RENEWED})
MONTH_TO_MONTH_ALLOWED = frozenset({LeaseStatus.ACTIVE, LeaseStatus.EXPIRED})
RENEW_ALLOWED = frozenset({LeaseStatus.ACTIVE, LeaseStatus.MONTH_TO_MONTH, LeaseStatus.NOTICE_GIVEN})
MOVE_OUT_ALLOWED = frozenset({LeaseStatus.NOTICE_GIVEN, LeaseStatus.EXPIRED, LeaseStatus.ACTIVE})
EARLY_TERMINATE_ALLOWED = frozenset(
    {LeaseStatus.ACTIVE, LeaseStatus.MONTH_TO_MONTH, LeaseStatus.NOTICE_GIVEN, LeaseStatus.PENDING}
)
SETTLEMENT_ALLOWED = frozenset({LeaseStatus.NOTICE_GIVEN, LeaseStatus.EXPIRED, LeaseStatus.TERMINATED})


def _utcnow() -> datetime:
    return datetime.utcnow()


def _blank(s: Optional[str]) -> bool:
    return not (s or "").strip()


def _names(statuses) -> str:
    return ", ".join(sorted(s.value for s in statuses))


@dataclass(frozen=True)
class DepositSettlement:
    lease_id: int
    tenant_id: int
    original_amount: float
    total_deductions: float
    refund_amount: float
    amount_owed: float
    deductions: list[DepositDeduction] = field(default_factory=list)
    settlement_date: date = field(default_factory=date.today)

    def as_dict(self) -> dict[str, Any]:
        return {
            "lease_id": self.lease_id,
            "tenant_id": self.tenant_id,
            "original_amount": self.original_amount,
            "total_deductions": self.total_deductions,
            "refund_amount": self.refund_amount,
            "amount_owed": self.amount_owed,
            "deductions": [d.model_dump() for d in self.deductions],
            "settlement_date": self.settlement_date,
        }


def compute_settlement(deposit_amount: float, deductions: list[DepositDeduction]) -> tuple[float, float, float]:
    """-> (total_deductions, refund_amount, amount_owed)"""
    total = round(sum(float(d.amount) for d in deductions), 2)
    amount = float(deposit_amount)
    refund = round(max(0.0, amount - total), 2)
    owed = round(max(0.0, total - amount), 2)
    return total, refund, owed


class LeaseWorkflowService:
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
    # lookups
    # -------------------------
    def _get_lease(self, lease_id: int) -> Optional[Lease]:
        return self.db.scalar(
            select(Lease).where(Lease.id == int(lease_id), Lease.org_id == self.org_id, Lease.is_deleted.is_(False))
        )

    def _get_property(self, property_id: int) -> Optional[Property]:
        return self.db.scalar(select(Property).where(Property.id == int(property_id), Property.org_id == self.org_id))

    def _get_tenant(self, tenant_id: int) -> Optional[Tenant]:
        return self.db.scalar(select(Tenant).where(Tenant.id == int(tenant_id), Tenant.org_id == self.org_id))

    def _get_deposit(self, lease_id: int) -> Optional[SecurityDeposit]:
        return self.db.scalar(
            select(SecurityDeposit).where(SecurityDeposit.lease_id == int(lease_id), SecurityDeposit.org_id == self.org_id)
        )

    def _has_other_occupying_lease(self, *, lease: Lease, by: str) -> bool:
        col = Lease.tenant_id if by == "tenant" else Lease.property_id
        value = lease.tenant_id if by == "tenant" else lease.property_id
        q = (
            select(Lease.id)
            .where(
                Lease.org_id == self.org_id,
                col == value,
                Lease.id != lease.id,
                Lease.is_deleted.is_(False),
                Lease.status.in_(list(OCCUPYING_LEASE_STATUSES)),
            )
            .limit(1)
        )
        return self.db.scalar(q) is not None

    # -------------------------
    # shared mutations
    # -------------------------
    def _set_lease(self, lease: Lease, to_status: LeaseStatus, action: str, reason: str | None = None, metadata: dict | None = None) -> None:
        change_status(
            self.db,
            actor=self.actor,
            entity=lease,
            entity_type=LEASE,
            to_status=to_status,
            action=action,
            reason=reason,
            metadata=metadata,
        )

    def _set_property(self, property_id: int, to_status: PropertyStatus, action: str, reason: str | None = None) -> None:
        prop = self._get_property(property_id)
        if prop is None:
            return
        change_status(
            self.db, actor=self.actor, entity=prop, entity_type=PROPERTY, to_status=to_status, action=action, reason=reason
        )

    def _release_occupancy(self, lease: Lease, *, action: str, vacate_property: bool = True) -> None:
        """Property back to Available and tenant inactive, unless another lease still holds them."""
        self.db.flush()
        if vacate_property and not self._has_other_occupying_lease(lease=lease, by="property"):
            self._set_property(lease.property_id, PropertyStatus.AVAILABLE, action, reason=f"Lease {lease.id} ended")

        tenant = self._get_tenant(lease.tenant_id)
        if tenant is not None and tenant.is_active and not self._has_other_occupying_lease(lease=lease, by="tenant"):
            tenant.is_active = False
            stamp(tenant, self.actor)
            self.db.add(tenant)

    # -------------------------
    # Activation + notice
    # -------------------------
    def activate_lease(self, lease_id: int, move_in_date: Optional[date] = None) -> WorkflowResult[Lease]:
        return self.uow.execute(lambda: self._activate(lease_id, move_in_date), name="ActivateLease")

    def _activate(self, lease_id: int, move_in_date: Optional[date]) -> WorkflowResult[Lease]:
        lease = self._get_lease(lease_id)
        if lease is None:
            return WorkflowResult.not_found("Lease")
        if lease.status != LeaseStatus.PENDING:
            return WorkflowResult.fail(f"Lease must be in Pending status to activate. Current status: {lease.status.value}")

        window = int(settings.lease_activation_window_days)
        if lease.start_date > date.today() + timedelta(days=window):
            return WorkflowResult.fail(f"Cannot activate lease more than {window} days before start date")

        self._set_lease(lease, LeaseStatus.ACTIVE, "ActivateLease")
        signed = move_in_date or date.today()
        lease.signed_on = datetime(signed.year, signed.month, signed.day)

        self._set_property(lease.property_id, PropertyStatus.OCCUPIED, "ActivateLease", reason=f"Lease {lease.id} activated")

        tenant = self._get_tenant(lease.tenant_id)
        if tenant is not None and not tenant.is_active:
            tenant.is_active = True
            stamp(tenant, self.actor)
            self.db.add(tenant)

        return WorkflowResult.success(lease, "Lease activated successfully")

    def record_termination_notice(self, lease_id: int, notice: TerminationNotice) -> WorkflowResult[Lease]:
        return self.uow.execute(lambda: self._record_notice(lease_id, notice), name="RecordTerminationNotice")

    def _record_notice(self, lease_id: int, notice: TerminationNotice) -> WorkflowResult[Lease]:
        if _blank(notice.reason):
            return WorkflowResult.fail("Termination notice reason is required")

        lease = self._get_lease(lease_id)
        if lease is None:
            return WorkflowResult.not_found("Lease")
        if lease.status not in NOTICE_ALLOWED:
            return WorkflowResult.fail(
                f"Can only record termination notice for leases in: {_names(NOTICE_ALLOWED)}. Current status: {lease.status.value}"
            )
        if notice.expected_move_out_date <= date.today():
            return WorkflowResult.fail("Expected move-out date must be in the future")

        reason = f"[{notice.notice_type}] {notice.reason.strip()}"
        self._set_lease(
            lease,
            LeaseStatus.NOTICE_GIVEN,
            "RecordTerminationNotice",
            reason=reason,
            metadata={
                "notice_date": notice.notice_date.isoformat(),
                "expected_move_out_date": notice.expected_move_out_date.isoformat(),
            },
        )
        lease.termination_noticed_on = notice.notice_date
        lease.expected_move_out_date = notice.expected_move_out_date
        lease.termination_reason = reason

        self.notes.add_note(
            LEASE,
            lease.id,
            f"Termination notice received ({notice.notice_type}) on {notice.notice_date.isoformat()}. "
            f"Expected move-out: {notice.expected_move_out_date.isoformat()}. Reason: {notice.reason.strip()}",
        )
        self.uow.notify(events.LEASE_NOTICE_RECORDED, org_id=self.org_id, entity_type=LEASE, entity_id=lease.id)
        return WorkflowResult.success(lease, "Termination notice recorded")

    def convert_to_month_to_month(self, lease_id: int, new_monthly_rent: Optional[float] = None) -> WorkflowResult[Lease]:
        return self.uow.execute(lambda: self._month_to_month(lease_id, new_monthly_rent), name="ConvertToMonthToMonth")

    def _month_to_month(self, lease_id: int, new_rent: Optional[float]) -> WorkflowResult[Lease]:
        lease = self._get_lease(lease_id)
        if lease is None:
            return WorkflowResult.not_found("Lease")
        if lease.status not in MONTH_TO_MONTH_ALLOWED:
            return WorkflowResult.fail(
                f"Can only convert to month-to-month from: {_names(MONTH_TO_MONTH_ALLOWED)}. Current status: {lease.status.value}"
            )

        meta: dict[str, Any] = {}
        if new_rent is not None and new_rent > 0:
            meta = {"previous_rent": lease.monthly_rent, "new_rent": float(new_rent)}
            lease.monthly_rent = float(new_rent)

        self._set_lease(lease, LeaseStatus.MONTH_TO_MONTH, "ConvertToMonthToMonth", metadata=meta or None)
        return WorkflowResult.success(lease, "Lease converted to month-to-month")

    # -------------------------
    # Renewal
    # -------------------------
    def renew_lease(self, lease_id: int, renewal: LeaseRenewal) -> WorkflowResult[Lease]:
        return self.uow.execute(lambda: self._renew(lease_id, renewal), name="RenewLease")

    def _renew(self, lease_id: int, renewal: LeaseRenewal) -> WorkflowResult[Lease]:
        lease = self._get_lease(lease_id)
        if lease is None:
            return WorkflowResult.not_found("Lease")
        if lease.status not in RENEW_ALLOWED:
            return WorkflowResult.fail(
                f"Can only renew leases in: {_names(RENEW_ALLOWED)}. Current status: {lease.status.value}"
            )
        if renewal.new_end_date <= lease.end_date:
            return WorkflowResult.fail("New end date must be after current end date")
        if renewal.new_monthly_rent <= 0:
            return WorkflowResult.fail("Monthly rent must be greater than zero")

        start = renewal.new_start_date or (lease.end_date + timedelta(days=1))
        if start >= renewal.new_end_date:
            return WorkflowResult.fail("End date must be after start date")

        deposit_amount = (
            float(renewal.updated_security_deposit)
            if renewal.updated_security_deposit is not None
            else float(lease.security_deposit_amount)
        )
        new_lease = Lease(
            org_id=self.org_id,
            property_id=lease.property_id,
            tenant_id=lease.tenant_id,
            start_date=start,
            end_date=renewal.new_end_date,
            monthly_rent=float(renewal.new_monthly_rent),
            security_deposit_amount=deposit_amount,
            terms=renewal.new_terms or lease.terms,
            notes=renewal.notes,
            status=LeaseStatus.ACTIVE,
            signed_on=_utcnow(),
            previous_lease_id=lease.id,
            renewal_number=int(lease.renewal_number or 0) + 1,
        )
        stamp(new_lease, self.actor, created=True)
        self.db.add(new_lease)
        self.db.flush()

        self._set_lease(
            lease,
            LeaseStatus.RENEWED,
            "RenewLease",
            metadata={"renewed_by_lease_id": new_lease.id},
        )
        record_creation(
            self.db,
            actor=self.actor,
            entity=new_lease,
            entity_type=LEASE,
            action="CreateRenewal",
            metadata={"previous_lease_id": lease.id, "renewal_number": new_lease.renewal_number},
        )

        # deposit follows the tenancy onto the new lease
        deposit = self._get_deposit(lease.id)
        if deposit is not None:
            deposit.lease_id = new_lease.id
            if deposit.amount != deposit_amount:
                deposit.notes = "; ".join(
                    x for x in (deposit.notes, f"Amount updated on renewal: {deposit.amount:.2f} -> {deposit_amount:.2f}") if x
                )
                deposit.amount = deposit_amount
            stamp(deposit, self.actor)
            self.db.add(deposit)

        self.notes.add_note(
            LEASE,
            new_lease.id,
            f"Renewal #{new_lease.renewal_number} of lease {lease.id}: "
            f"{start.isoformat()} to {renewal.new_end_date.isoformat()} at {new_lease.monthly_rent:.2f}/month",
        )
        self.uow.notify(
            events.LEASE_RENEWED,
            org_id=self.org_id,
            entity_type=LEASE,
            entity_id=new_lease.id,
            previous_lease_id=lease.id,
        )
        return WorkflowResult.success(new_lease, "Lease renewed successfully", previous_lease_id=lease.id)

    # -------------------------
    # Move-out + termination
    # -------------------------
    def complete_move_out(self, lease_id: int, details: MoveOutDetails) -> WorkflowResult[Lease]:
        return self.uow.execute(lambda: self._move_out(lease_id, details), name="CompleteMoveOut")

    def _move_out(self, lease_id: int, details: MoveOutDetails) -> WorkflowResult[Lease]:
        lease = self._get_lease(lease_id)
        if lease is None:
            return WorkflowResult.not_found("Lease")
        if lease.status not in MOVE_OUT_ALLOWED:
            return WorkflowResult.fail(
                f"Can only complete move-out for leases in: {_names(MOVE_OUT_ALLOWED)}. Current status: {lease.status.value}"
            )

        self._set_lease(
            lease,
            LeaseStatus.TERMINATED,
            "CompleteMoveOut",
            metadata={
                "actual_move_out_date": details.actual_move_out_date.isoformat(),
                "final_inspection_completed": details.final_inspection_completed,
                "keys_returned": details.keys_returned,
            },
        )
        lease.actual_move_out_date = details.actual_move_out_date
        self._release_occupancy(lease, action="CompleteMoveOut")

        text = (
            f"Move-out completed on {details.actual_move_out_date.isoformat()}. "
            f"Final inspection: {'yes' if details.final_inspection_completed else 'no'}. "
            f"Keys returned: {'yes' if details.keys_returned else 'no'}."
        )
        if details.notes:
            text = f"{text} {details.notes.strip()}"
        self.notes.add_note(LEASE, lease.id, text)

        self.uow.notify(events.LEASE_TERMINATED, org_id=self.org_id, entity_type=LEASE, entity_id=lease.id)
        return WorkflowResult.success(lease, "Move-out completed")

    def early_terminate(self, lease_id: int, termination: EarlyTermination) -> WorkflowResult[Lease]:
        return self.uow.execute(lambda: self._early_terminate(lease_id, termination), name="EarlyTerminate")

    def _early_terminate(self, lease_id: int, t: EarlyTermination) -> WorkflowResult[Lease]:
        if _blank(t.reason):
            return WorkflowResult.fail("Termination reason is required")

        lease = self._get_lease(lease_id)
        if lease is None:
            return WorkflowResult.not_found("Lease")
        if lease.status not in EARLY_TERMINATE_ALLOWED:
            return WorkflowResult.fail(
                f"Can only terminate leases in: {_names(EARLY_TERMINATE_ALLOWED)}. Current status: {lease.status.value}"
            )

        reason = f"[{t.termination_type}] {t.reason.strip()}"
        self._set_lease(
            lease,
            LeaseStatus.TERMINATED,
            "EarlyTerminate",
            reason=reason,
            metadata={"effective_date": t.effective_date.isoformat()},
        )
        lease.termination_reason = reason
        lease.actual_move_out_date = t.effective_date

        self._release_occupancy(lease, action="EarlyTerminate", vacate_property=t.effective_date <= date.today())

        self.uow.notify(events.LEASE_TERMINATED, org_id=self.org_id, entity_type=LEASE, entity_id=lease.id, reason=reason)
        return WorkflowResult.success(lease, "Lease terminated")

    def expire_overdue_leases(self, org_id: Optional[int] = None) -> WorkflowResult[int]:
        if org_id is not None and int(org_id) != self.org_id:
            return WorkflowResult.fail("Organization does not match the acting principal", kind=VALIDATION)
        return self.uow.execute(self._expire_overdue, name="ExpireOverdueLeases")

    def _expire_overdue(self) -> WorkflowResult[int]:
        today = date.today()
        leases = self.db.scalars(
            select(Lease).where(
                Lease.org_id == self.org_id,
                Lease.is_deleted.is_(False),
                Lease.status == LeaseStatus.ACTIVE,
                Lease.end_date < today,
            )
        ).all()

        for lease in leases:
            self._set_lease(
                lease,
                LeaseStatus.EXPIRED,
                "AutoExpire",
                reason="Lease end date passed without renewal",
                metadata={"end_date": lease.end_date.isoformat()},
            )

        count = len(leases)
        log.info("leases_expired", extra={"org_id": self.org_id, "count": count})
        return WorkflowResult.success(count, f"{count} lease(s) expired")

    # -------------------------
    # Security deposit
    # -------------------------
    def initiate_deposit_settlement(
        self, lease_id: int, deductions: list[DepositDeduction]
    ) -> WorkflowResult[DepositSettlement]:
        return self.uow.execute(lambda: self._settle(lease_id, list(deductions or [])), name="InitiateDepositSettlement")

    def _settle(self, lease_id: int, deductions: list[DepositDeduction]) -> WorkflowResult[DepositSettlement]:
        lease = self._get_lease(lease_id)
        if lease is None:
            return WorkflowResult.not_found("Lease")
        if lease.status not in SETTLEMENT_ALLOWED:
            return WorkflowResult.fail(
                f"Deposit can only be settled for leases in: {_names(SETTLEMENT_ALLOWED)}. Current status: {lease.status.value}"
            )

        deposit = self._get_deposit(lease.id)
        if deposit is None:
            return WorkflowResult.not_found("Security deposit")
        if deposit.status != DepositStatus.HELD:
            return WorkflowResult.fail("Security deposit has already been settled")

        total, refund, owed = compute_settlement(deposit.amount, deductions)
        target = DepositStatus.PENDING_RETURN if refund > 0 else DepositStatus.FORFEITED

        deposit.deductions_amount = total
        deposit.deductions_reason = "; ".join(f"{d.description}: {float(d.amount):.2f}" for d in deductions) or None
        deposit.refund_amount = refund
        change_status(
            self.db,
            actor=self.actor,
            entity=deposit,
            entity_type=DEPOSIT,
            to_status=target,
            action="InitiateDepositSettlement",
            metadata={"total_deductions": total, "refund_amount": refund, "amount_owed": owed},
        )

        settlement = DepositSettlement(
            lease_id=lease.id,
            tenant_id=lease.tenant_id,
            original_amount=float(deposit.amount),
            total_deductions=total,
            refund_amount=refund,
            amount_owed=owed,
            deductions=deductions,
            settlement_date=date.today(),
        )
        return WorkflowResult.success(settlement, "Deposit settlement calculated", deposit_status=target.value)

    def record_deposit_refund(self, lease_id: int, refund: DepositRefundIn) -> WorkflowResult[SecurityDeposit]:
        return self.uow.execute(lambda: self._refund(lease_id, refund), name="RecordDepositRefund")

    def _refund(self, lease_id: int, refund: DepositRefundIn) -> WorkflowResult[SecurityDeposit]:
        deposit = self._get_deposit(lease_id)
        if deposit is None:
            return WorkflowResult.not_found("Security deposit")
        if deposit.status == DepositStatus.REFUNDED:
            return WorkflowResult.fail("Deposit has already been returned")
        if _blank(refund.refund_method):
            return WorkflowResult.fail("Refund method is required")

        today = date.today()
        deposit.refund_amount = float(refund.refund_amount)
        deposit.refund_method = refund.refund_method.strip()
        deposit.refund_reference = refund.refund_reference
        deposit.refund_processed_date = today
        summary = f"Refund of {float(refund.refund_amount):.2f} via {deposit.refund_method} on {today.isoformat()}"
        if refund.refund_reference:
            summary = f"{summary} (ref {refund.refund_reference})"
        deposit.notes = "; ".join(x for x in (deposit.notes, summary) if x)

        change_status(
            self.db,
            actor=self.actor,
            entity=deposit,
            entity_type=DEPOSIT,
            to_status=DepositStatus.REFUNDED,
            action="RecordDepositRefund",
            reason=summary,
        )
        self.uow.notify(
            events.DEPOSIT_REFUNDED, org_id=self.org_id, entity_type=DEPOSIT, entity_id=deposit.id, lease_id=lease_id
        )
        return WorkflowResult.success(deposit, "Deposit refund recorded")

    # -------------------------
    # Read models
    # -------------------------
    def get_renewal_chain(self, lease_id: int) -> list[Lease]:
        """Oldest first: the original lease through every renewal after it."""
        lease = self._get_lease(lease_id)
        if lease is None:
            return []

        root = lease
        seen = {root.id}
        while root.previous_lease_id is not None:
            prev = self._get_lease(root.previous_lease_id)
            if prev is None or prev.id in seen:
                break
            seen.add(prev.id)
            root = prev

        chain = [root]
        while True:
            nxt = self.db.scalar(
                select(Lease)
                .where(Lease.previous_lease_id == chain[-1].id, Lease.org_id == self.org_id, Lease.is_deleted.is_(False))
                .order_by(Lease.renewal_number.asc(), Lease.id.asc())
                .limit(1)
            )
            if nxt is None or nxt.id in {x.id for x in chain}:
                break
            chain.append(nxt)
        return chain

    def get_lease_workflow_state(self, lease_id: int) -> WorkflowResult[dict[str, Any]]:
        lease = self._get_lease(lease_id)
        if lease is None:
            return WorkflowResult.not_found("Lease")

        today = date.today()
        days_left = (lease.end_date - today).days
        expiring_window = int(settings.lease_expiring_window_days)
        renewals = self.db.scalars(
            select(Lease).where(Lease.previous_lease_id == lease.id, Lease.org_id == self.org_id).order_by(Lease.id.asc())
        ).all()
        history = audit_history(self.db, org_id=self.org_id, entity_type=LEASE, entity_id=lease.id)

        state = {
            "lease": lease,
            "tenant": self._get_tenant(lease.tenant_id),
            "property": self._get_property(lease.property_id),
            "security_deposit": self._get_deposit(lease.id),
            "renewals": list(renewals),
            "audit_history": [audit_row_to_dict(r) for r in history],
            "days_until_expiration": days_left,
            "is_expiring": lease.status == LeaseStatus.ACTIVE and 0 <= days_left <= expiring_window,
            "can_renew": lease.status in RENEW_ALLOWED,
            "can_terminate": lease.status in EARLY_TERMINATE_ALLOWED,
            "valid_next_states": sorted(s.value for s in LEASE_TRANSITIONS.valid_next_states(lease.status)),
        }
        return WorkflowResult.success(state)

    def get_expiring_leases(self, within_days: Optional[int] = None) -> list[Lease]:
        days = int(within_days if within_days is not None else settings.lease_expiring_window_days)
        today = date.today()
        q = (
            select(Lease)
            .where(
                Lease.org_id == self.org_id,
                Lease.is_deleted.is_(False),
                Lease.status == LeaseStatus.ACTIVE,
                Lease.end_date >= today,
                Lease.end_date <= today + timedelta(days=days),
            )
            .order_by(Lease.end_date.asc(), Lease.id.asc())
        )
        return list(self.db.scalars(q).all())

    def get_leases_with_notice(self) -> list[Lease]:
        q = (
            select(Lease)
            .where(
                Lease.org_id == self.org_id,
                Lease.is_deleted.is_(False),
                Lease.status == LeaseStatus.NOTICE_GIVEN,
            )
            .order_by(Lease.expected_move_out_date.asc(), Lease.id.asc())
        )
        return list(self.db.scalars(q).all())
