# backend/leaseflow/routers/leases.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_operator
from ..db import get_db
from ..schemas import (
    ActivateLeaseIn,
    DepositOut,
    DepositRefundIn,
    DepositSettlementIn,
    DepositSettlementOut,
    EarlyTermination,
    LeaseOut,
    LeaseRenewal,
    MonthToMonthIn,
    MoveOutDetails,
    PropertyOut,
    TenantOut,
    TerminationNotice,
)
from ..services.lease_workflow import LeaseWorkflowService
from .common import dump, workflow_response

router = APIRouter(prefix="/leases", tags=["leases"])


def get_lease_workflow(db: Session = Depends(get_db), p: Principal = Depends(get_principal)) -> LeaseWorkflowService:
    return LeaseWorkflowService(db, p)


@router.get("/expiring", response_model=list[LeaseOut])
def expiring_leases(
    within_days: int = Query(default=60, ge=0, le=366),
    svc: LeaseWorkflowService = Depends(get_lease_workflow),
):
    return svc.get_expiring_leases(within_days)


@router.get("/notice", response_model=list[LeaseOut])
def leases_with_notice(svc: LeaseWorkflowService = Depends(get_lease_workflow)):
    return svc.get_leases_with_notice()


@router.post("/expire-overdue")
def expire_overdue(
    svc: LeaseWorkflowService = Depends(get_lease_workflow),
    _op: Principal = Depends(require_operator),
):
    return workflow_response(svc.expire_overdue_leases())


@router.get("/{lease_id}/workflow")
def lease_workflow_state(lease_id: int, svc: LeaseWorkflowService = Depends(get_lease_workflow)):
    res = svc.get_lease_workflow_state(lease_id)
    if res.ok:
        s = res.data
        res.data = {
            "lease": dump(s["lease"], LeaseOut),
            "tenant": dump(s["tenant"], TenantOut),
            "property": dump(s["property"], PropertyOut),
            "security_deposit": dump(s["security_deposit"], DepositOut),
            "renewals": dump(s["renewals"], LeaseOut),
            "audit_history": s["audit_history"],
            "days_until_expiration": s["days_until_expiration"],
            "is_expiring": s["is_expiring"],
            "can_renew": s["can_renew"],
            "can_terminate": s["can_terminate"],
            "valid_next_states": s["valid_next_states"],
        }
    return workflow_response(res)


@router.get("/{lease_id}/renewals", response_model=list[LeaseOut])
def renewal_chain(lease_id: int, svc: LeaseWorkflowService = Depends(get_lease_workflow)):
    return svc.get_renewal_chain(lease_id)


@router.post("/{lease_id}/activate")
def activate_lease(lease_id: int, payload: ActivateLeaseIn, svc: LeaseWorkflowService = Depends(get_lease_workflow)):
    return workflow_response(svc.activate_lease(lease_id, payload.move_in_date), LeaseOut)


@router.post("/{lease_id}/notice")
def record_notice(lease_id: int, payload: TerminationNotice, svc: LeaseWorkflowService = Depends(get_lease_workflow)):
    return workflow_response(svc.record_termination_notice(lease_id, payload), LeaseOut)


@router.post("/{lease_id}/month-to-month")
def month_to_month(lease_id: int, payload: MonthToMonthIn, svc: LeaseWorkflowService = Depends(get_lease_workflow)):
    return workflow_response(svc.convert_to_month_to_month(lease_id, payload.new_monthly_rent), LeaseOut)


@router.post("/{lease_id}/renew")
def renew_lease(lease_id: int, payload: LeaseRenewal, svc: LeaseWorkflowService = Depends(get_lease_workflow)):
    return workflow_response(svc.renew_lease(lease_id, payload), LeaseOut)


@router.post("/{lease_id}/move-out")
def complete_move_out(lease_id: int, payload: MoveOutDetails, svc: LeaseWorkflowService = Depends(get_lease_workflow)):
    return workflow_response(svc.complete_move_out(lease_id, payload), LeaseOut)


@router.post("/{lease_id}/terminate")
def early_terminate(lease_id: int, payload: EarlyTermination, svc: LeaseWorkflowService = Depends(get_lease_workflow)):
    return workflow_response(svc.early_terminate(lease_id, payload), LeaseOut)


@router.post("/{lease_id}/deposit/settle")
def settle_deposit(
    lease_id: int, payload: DepositSettlementIn, svc: LeaseWorkflowService = Depends(get_lease_workflow)
):
    res = svc.initiate_deposit_settlement(lease_id, payload.deductions)
    if res.ok:
        res.data = DepositSettlementOut(**res.data.as_dict())
    return workflow_response(res, DepositSettlementOut)


@router.post("/{lease_id}/deposit/refund")
def refund_deposit(lease_id: int, payload: DepositRefundIn, svc: LeaseWorkflowService = Depends(get_lease_workflow)):
    return workflow_response(svc.record_deposit_refund(lease_id, payload), DepositOut)
