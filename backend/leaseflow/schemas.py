# backend/leaseflow/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .domain.states import (
    ApplicationStatus,
    DepositStatus,
    LeaseOfferStatus,
    LeaseStatus,
    PropertyStatus,
    ProspectStatus,
    ScreeningResult,
)


# -------------------- Setup (thin CRUD) --------------------

class PropertyCreate(BaseModel):
    address: str
    city: str
    state: str = "MI"
    zip: str
    bedrooms: int = 0
    bathrooms: float = 1.0
    monthly_rent: Optional[float] = None


class PropertyOut(BaseModel):
    id: int
    address: str
    city: str
    state: str
    zip: str
    status: PropertyStatus
    monthly_rent: Optional[float] = None
    model_config = ConfigDict(from_attributes=True)


class ProspectCreate(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    identification_number: Optional[str] = None
    identification_state: Optional[str] = Field(default=None, max_length=2)
    source: Optional[str] = None
    interested_property_id: Optional[int] = None


class ProspectOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    status: ProspectStatus
    identification_number: Optional[str] = None
    identification_state: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Application workflow inputs --------------------

class ApplicationSubmission(BaseModel):
    prospect_id: int
    property_id: int

    application_fee: float = Field(default=0.0, ge=0)
    application_fee_paid: bool = False
    application_fee_payment_method: Optional[str] = None

    current_address: Optional[str] = None
    current_city: Optional[str] = None
    current_state: Optional[str] = None
    current_zip: Optional[str] = None
    current_rent: Optional[float] = Field(default=None, ge=0)
    landlord_name: Optional[str] = None
    landlord_phone: Optional[str] = None

    employer_name: Optional[str] = None
    job_title: Optional[str] = None
    monthly_income: Optional[float] = Field(default=None, ge=0)
    employment_length_months: Optional[int] = Field(default=None, ge=0)

    reference1_name: Optional[str] = None
    reference1_phone: Optional[str] = None
    reference1_relationship: Optional[str] = None
    reference2_name: Optional[str] = None
    reference2_phone: Optional[str] = None
    reference2_relationship: Optional[str] = None

    def applicant_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"prospect_id", "property_id"})


class ScreeningRequest(BaseModel):
    request_background_check: bool = True
    request_credit_check: bool = True


class ScreeningResults(BaseModel):
    background_check_passed: Optional[bool] = None
    background_check_notes: Optional[str] = None
    credit_check_passed: Optional[bool] = None
    credit_score: Optional[int] = Field(default=None, ge=300, le=850)
    credit_check_notes: Optional[str] = None
    overall_result: ScreeningResult
    result_notes: Optional[str] = None


class ReasonIn(BaseModel):
    # blank-check happens in the workflow so API and library callers share one message
    reason: str = ""


class LeaseOfferTerms(BaseModel):
    start_date: date
    end_date: date
    monthly_rent: float
    security_deposit: float = 0.0
    terms: Optional[str] = None
    notes: Optional[str] = None


class LeaseOfferAcceptance(BaseModel):
    deposit_payment_method: str
    deposit_payment_date: Optional[date] = None
    deposit_reference_number: Optional[str] = None
    deposit_notes: Optional[str] = None


# -------------------- Lease workflow inputs --------------------

class ActivateLeaseIn(BaseModel):
    move_in_date: Optional[date] = None


class TerminationNotice(BaseModel):
    notice_date: date
    expected_move_out_date: date
    notice_type: str = "Tenant"
    reason: str = ""


class MonthToMonthIn(BaseModel):
    new_monthly_rent: Optional[float] = None


class LeaseRenewal(BaseModel):
    new_start_date: Optional[date] = None
    new_end_date: date
    new_monthly_rent: float
    updated_security_deposit: Optional[float] = Field(default=None, ge=0)
    new_terms: Optional[str] = None
    notes: Optional[str] = None


class MoveOutDetails(BaseModel):
    actual_move_out_date: date
    final_inspection_completed: bool = False
    keys_returned: bool = False
    notes: Optional[str] = None


class EarlyTermination(BaseModel):
    termination_type: str
    reason: str = ""
    effective_date: date


class DepositDeduction(BaseModel):
    description: str
    amount: float = Field(ge=0)
    category: Optional[str] = None


class DepositSettlementIn(BaseModel):
    deductions: List[DepositDeduction] = Field(default_factory=list)


class DepositRefundIn(BaseModel):
    refund_amount: float = Field(ge=0)
    refund_method: str
    refund_reference: Optional[str] = None


# -------------------- Outputs --------------------

class ApplicationOut(BaseModel):
    id: int
    prospect_id: int
    property_id: int
    status: ApplicationStatus
    applied_on: datetime
    expires_on: Optional[datetime] = None
    application_fee_paid: bool
    decided_on: Optional[datetime] = None
    decision_by: Optional[str] = None
    denial_reason: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ScreeningOut(BaseModel):
    id: int
    rental_application_id: int
    background_check_requested: bool
    background_check_passed: Optional[bool] = None
    credit_check_requested: bool
    credit_check_passed: Optional[bool] = None
    credit_score: Optional[int] = None
    overall_result: ScreeningResult
    result_notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class LeaseOfferOut(BaseModel):
    id: int
    rental_application_id: int
    property_id: int
    prospect_id: int
    start_date: date
    end_date: date
    monthly_rent: float
    security_deposit: float
    status: LeaseOfferStatus
    offered_on: datetime
    expires_on: datetime
    responded_on: Optional[datetime] = None
    converted_lease_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


class TenantOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    is_active: bool
    prospect_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


class LeaseOut(BaseModel):
    id: int
    property_id: int
    tenant_id: int
    lease_offer_id: Optional[int] = None
    start_date: date
    end_date: date
    monthly_rent: float
    security_deposit_amount: float
    status: LeaseStatus
    previous_lease_id: Optional[int] = None
    renewal_number: int
    termination_reason: Optional[str] = None
    expected_move_out_date: Optional[date] = None
    actual_move_out_date: Optional[date] = None
    model_config = ConfigDict(from_attributes=True)


class DepositOut(BaseModel):
    id: int
    lease_id: int
    amount: float
    status: DepositStatus
    deductions_amount: float
    refund_amount: Optional[float] = None
    refund_method: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class DepositSettlementOut(BaseModel):
    lease_id: int
    tenant_id: int
    original_amount: float
    total_deductions: float
    refund_amount: float
    amount_owed: float
    deductions: List[DepositDeduction]
    settlement_date: date


class AuditEntryOut(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    from_status: Optional[str] = None
    to_status: str
    action: str
    reason: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    performed_by: str
    performed_on: datetime


class WorkflowResultOut(BaseModel):
    ok: bool
    message: str = ""
    errors: List[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    data: Any = None
