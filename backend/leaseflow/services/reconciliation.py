# backend/leaseflow/services/reconciliation.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.states import OPEN_APPLICATION_STATUSES, LeaseOfferStatus, PropertyStatus
from ..models import LeaseOffer, Property, RentalApplication
from .transitions import change_status

log = logging.getLogger("leaseflow.workflow")

PENDING_PROPERTY_STATUSES = frozenset({PropertyStatus.APPLICATION_PENDING, PropertyStatus.LEASE_PENDING})


def open_application_count(
    db: Session, *, org_id: int, property_id: int, exclude_application_id: Optional[int] = None
) -> int:
    q = select(func.count(RentalApplication.id)).where(
        RentalApplication.org_id == org_id,
        RentalApplication.property_id == property_id,
        RentalApplication.is_deleted.is_(False),
        RentalApplication.status.in_(list(OPEN_APPLICATION_STATUSES)),
    )
    if exclude_application_id is not None:
        q = q.where(RentalApplication.id != exclude_application_id)
    return int(db.scalar(q) or 0)


def pending_offer_count(db: Session, *, org_id: int, property_id: int, exclude_offer_id: Optional[int] = None) -> int:
    q = select(func.count(LeaseOffer.id)).where(
        LeaseOffer.org_id == org_id,
        LeaseOffer.property_id == property_id,
        LeaseOffer.is_deleted.is_(False),
        LeaseOffer.status == LeaseOfferStatus.PENDING,
    )
    if exclude_offer_id is not None:
        q = q.where(LeaseOffer.id != exclude_offer_id)
    return int(db.scalar(q) or 0)


def reconcile_property_status(
    db: Session,
    *,
    actor: Principal,
    property_id: int,
    exclude_application_id: Optional[int] = None,
    exclude_offer_id: Optional[int] = None,
    reason: str = "No open applications or pending offers remain",
) -> Optional[PropertyStatus]:
    """
    Puts a pending property back to Available once nothing claims it.

    Reads after flushing the caller's staged changes, inside the caller's
    transaction. Occupied/Available properties are left alone.
    Returns the property's resulting status (None if it doesn't resolve).
    """
    db.flush()

    org_id = actor.active_organization_id()
    prop = db.scalar(select(Property).where(Property.id == property_id, Property.org_id == org_id))
    if prop is None:
        return None
    if prop.status not in PENDING_PROPERTY_STATUSES:
        return prop.status

    apps = open_application_count(
        db, org_id=org_id, property_id=property_id, exclude_application_id=exclude_application_id
    )
    offers = pending_offer_count(db, org_id=org_id, property_id=property_id, exclude_offer_id=exclude_offer_id)
    if apps or offers:
        return prop.status

    change_status(
        db,
        actor=actor,
        entity=prop,
        entity_type="Property",
        to_status=PropertyStatus.AVAILABLE,
        action="ReconcilePropertyStatus",
        reason=reason,
    )
    log.info(
        "property_reconciled_available",
        extra={"org_id": org_id, "entity_type": "Property", "entity_id": property_id},
    )
    return prop.status
