# backend/leaseflow/routers/applications.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import (
    ApplicationOut,
    ApplicationSubmission,
    LeaseOfferAcceptance,
    LeaseOfferOut,
    LeaseOfferTerms,
    LeaseOut,
    PropertyOut,
    ProspectOut,
    ReasonIn,
    ScreeningOut,
    ScreeningRequest,
    ScreeningResults,
)
from ..services.application_workflow import ApplicationWorkflowService
from .common import dump, workflow_response

router = APIRouter(tags=["applications"])


def get_application_workflow(
    db: Session = Depends(get_db), p: Principal = Depends(get_principal)
) -> ApplicationWorkflowService:
    return ApplicationWorkflowService(db, p)


@router.post("/applications")
def submit_application(payload: ApplicationSubmission, svc: ApplicationWorkflowService = Depends(get_application_workflow)):
    return workflow_response(svc.submit_application(payload), ApplicationOut)


@router.post("/applications/{application_id}/review")
def mark_under_review(application_id: int, svc: ApplicationWorkflowService = Depends(get_application_workflow)):
    return workflow_response(svc.mark_under_review(application_id), ApplicationOut)


@router.post("/applications/{application_id}/screening")
def initiate_screening(
    application_id: int,
    payload: ScreeningRequest,
    svc: ApplicationWorkflowService = Depends(get_application_workflow),
):
    res = svc.initiate_screening(
        application_id,
        request_background_check=payload.request_background_check,
        request_credit_check=payload.request_credit_check,
    )
    return workflow_response(res, ScreeningOut)


@router.post("/applications/{application_id}/screening/complete")
def complete_screening(
    application_id: int,
    payload: ScreeningResults,
    svc: ApplicationWorkflowService = Depends(get_application_workflow),
):
    return workflow_response(svc.complete_screening(application_id, payload), ScreeningOut)


@router.post("/applications/{application_id}/approve")
def approve_application(application_id: int, svc: ApplicationWorkflowService = Depends(get_application_workflow)):
    return workflow_response(svc.approve_application(application_id), ApplicationOut)


@router.post("/applications/{application_id}/deny")
def deny_application(
    application_id: int, payload: ReasonIn, svc: ApplicationWorkflowService = Depends(get_application_workflow)
):
    return workflow_response(svc.deny_application(application_id, payload.reason), ApplicationOut)


@router.post("/applications/{application_id}/withdraw")
def withdraw_application(
    application_id: int, payload: ReasonIn, svc: ApplicationWorkflowService = Depends(get_application_workflow)
):
    return workflow_response(svc.withdraw_application(application_id, payload.reason), ApplicationOut)


@router.post("/applications/{application_id}/offer")
def generate_lease_offer(
    application_id: int,
    payload: LeaseOfferTerms,
    svc: ApplicationWorkflowService = Depends(get_application_workflow),
):
    return workflow_response(svc.generate_lease_offer(application_id, payload), LeaseOfferOut)


@router.get("/applications/{application_id}/workflow")
def application_workflow_state(application_id: int, svc: ApplicationWorkflowService = Depends(get_application_workflow)):
    res = svc.get_application_workflow_state(application_id)
    if res.ok:
        s = res.data
        res.data = {
            "application": dump(s["application"], ApplicationOut),
            "prospect": dump(s["prospect"], ProspectOut),
            "property": dump(s["property"], PropertyOut),
            "screening": dump(s["screening"], ScreeningOut),
            "lease_offers": dump(s["lease_offers"], LeaseOfferOut),
            "audit_history": s["audit_history"],
            "valid_next_states": s["valid_next_states"],
        }
    return workflow_response(res)


@router.post("/lease-offers/{offer_id}/accept")
def accept_lease_offer(
    offer_id: int, payload: LeaseOfferAcceptance, svc: ApplicationWorkflowService = Depends(get_application_workflow)
):
    return workflow_response(svc.accept_lease_offer(offer_id, payload), LeaseOut)


@router.post("/lease-offers/{offer_id}/decline")
def decline_lease_offer(
    offer_id: int, payload: ReasonIn, svc: ApplicationWorkflowService = Depends(get_application_workflow)
):
    return workflow_response(svc.decline_lease_offer(offer_id, payload.reason), LeaseOfferOut)


@router.post("/lease-offers/{offer_id}/expire")
def expire_lease_offer(offer_id: int, svc: ApplicationWorkflowService = Depends(get_application_workflow)):
    return workflow_response(svc.expire_lease_offer(offer_id), LeaseOfferOut)
