# backend/leaseflow/models.py
from __future__ import annotations

from datetime import date, datetime
from enum import Enum as PyEnum
from typing import List, Optional, Type

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base
from .domain.states import (
    ApplicationStatus,
    DepositStatus,
    LeaseOfferStatus,
    LeaseStatus,
    PropertyStatus,
    ProspectStatus,
    ScreeningResult,
)


def _status(enum_cls: Type[PyEnum]) -> Enum:
    # VARCHAR in the store, enum members in Python
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda e: [m.value for m in e],
        validate_strings=True,
    )


# -----------------------------
# Multitenant RBAC tables
# -----------------------------
class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(80), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)

    # None -> settings.application_expiration_days
    application_expiration_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AppUser(Base):
    __tablename__ = "app_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class OrgMembership(Base):
    __tablename__ = "org_memberships"
    __table_args__ = (UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="owner")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Properties
# -----------------------------
class Property(Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    state: Mapped[str] = mapped_column(String(2), nullable=False, default="MI")
    zip: Mapped[str] = mapped_column(String(10), nullable=False)

    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bathrooms: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    monthly_rent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    status: Mapped[PropertyStatus] = mapped_column(
        _status(PropertyStatus), nullable=False, default=PropertyStatus.AVAILABLE, index=True
    )

    # optimistic lock; concurrent workflow writers get StaleDataError at flush
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    created_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    __mapper_args__ = {"version_id_col": version}


# -----------------------------
# Prospects + applications
# -----------------------------
class ProspectiveTenant(Base):
    __tablename__ = "prospective_tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    identification_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    identification_state: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)

    status: Mapped[ProspectStatus] = mapped_column(_status(ProspectStatus), nullable=False, default=ProspectStatus.LEAD)
    source: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    interested_property_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("properties.id"), nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    created_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class RentalApplication(Base):
    __tablename__ = "rental_applications"
    __table_args__ = (
        Index("ix_rental_applications_org_property_status", "org_id", "property_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    prospect_id: Mapped[int] = mapped_column(Integer, ForeignKey("prospective_tenants.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"), nullable=False, index=True)

    status: Mapped[ApplicationStatus] = mapped_column(
        _status(ApplicationStatus), nullable=False, default=ApplicationStatus.SUBMITTED
    )
    applied_on: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    expires_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    application_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    application_fee_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    application_fee_paid_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    application_fee_payment_method: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # applicant snapshot
    current_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    current_city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    current_state: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    current_zip: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    current_rent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    landlord_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    landlord_phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    employer_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    job_title: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    monthly_income: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    employment_length_months: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reference1_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    reference1_phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    reference1_relationship: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    reference2_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    reference2_phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    reference2_relationship: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    # decision metadata
    decided_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    decision_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    denial_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    created_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    prospect: Mapped["ProspectiveTenant"] = relationship()
    property: Mapped["Property"] = relationship()
    screening: Mapped[Optional["ApplicationScreening"]] = relationship(back_populates="application", uselist=False)

    __mapper_args__ = {"version_id_col": version}


class ApplicationScreening(Base):
    __tablename__ = "application_screenings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    rental_application_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("rental_applications.id"), nullable=False, unique=True
    )

    background_check_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    background_check_requested_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    background_check_passed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    background_check_completed_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    background_check_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    credit_check_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    credit_check_requested_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    credit_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    credit_check_passed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    credit_check_completed_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    credit_check_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    overall_result: Mapped[ScreeningResult] = mapped_column(
        _status(ScreeningResult), nullable=False, default=ScreeningResult.PENDING
    )
    result_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    created_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    application: Mapped["RentalApplication"] = relationship(back_populates="screening")


class LeaseOffer(Base):
    __tablename__ = "lease_offers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    rental_application_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("rental_applications.id"), nullable=False, index=True
    )
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    prospect_id: Mapped[int] = mapped_column(Integer, ForeignKey("prospective_tenants.id"), nullable=False, index=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False)
    security_deposit: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    offered_on: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    expires_on: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[LeaseOfferStatus] = mapped_column(
        _status(LeaseOfferStatus), nullable=False, default=LeaseOfferStatus.PENDING
    )
    responded_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    response_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    converted_lease_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("leases.id"), nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    created_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)


# -----------------------------
# Tenants + leases
# -----------------------------
class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    identification_number: Mapped[str] = mapped_column(String(100), nullable=False)

    prospect_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("prospective_tenants.id"), nullable=True, unique=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    created_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    leases: Mapped[List["Lease"]] = relationship(back_populates="tenant")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Lease(Base):
    __tablename__ = "leases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    lease_offer_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("lease_offers.id", use_alter=True), nullable=True
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    security_deposit_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[LeaseStatus] = mapped_column(_status(LeaseStatus), nullable=False, default=LeaseStatus.PENDING, index=True)
    signed_on: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    termination_noticed_on: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expected_move_out_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    actual_move_out_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    termination_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # renewal chain
    previous_lease_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("leases.id"), nullable=True, index=True)
    renewal_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    created_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    tenant: Mapped["Tenant"] = relationship(back_populates="leases")
    property: Mapped["Property"] = relationship()


class SecurityDeposit(Base):
    __tablename__ = "security_deposits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    lease_id: Mapped[int] = mapped_column(Integer, ForeignKey("leases.id"), nullable=False, unique=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    amount: Mapped[float] = mapped_column(Float, nullable=False)
    date_received: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(40), nullable=False)
    transaction_reference: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    status: Mapped[DepositStatus] = mapped_column(_status(DepositStatus), nullable=False, default=DepositStatus.HELD)
    in_investment_pool: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pool_entry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    deductions_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    deductions_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refund_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    refund_processed_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    refund_method: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    refund_reference: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    created_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)


# -----------------------------
# Audit + notes
# -----------------------------
class WorkflowAuditLog(Base):
    """Append-only status transition log. Rows are never updated or deleted."""

    __tablename__ = "workflow_audit_logs"
    __table_args__ = (Index("ix_workflow_audit_logs_entity", "org_id", "entity_type", "entity_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    entity_type: Mapped[str] = mapped_column(String(60), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    from_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    to_status: Mapped[str] = mapped_column(String(32), nullable=False)
    action: Mapped[str] = mapped_column(String(80), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    performed_by: Mapped[str] = mapped_column(String(80), nullable=False)
    performed_on: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, index=True)


class Note(Base):
    __tablename__ = "notes"
    __table_args__ = (Index("ix_notes_entity", "org_id", "entity_type", "entity_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(60), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
