# backend/leaseflow/routers/properties.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.states import PropertyStatus, ProspectStatus
from ..models import Property, ProspectiveTenant
from ..schemas import PropertyCreate, PropertyOut, ProspectCreate, ProspectOut
from ..services.transitions import stamp

router = APIRouter(tags=["setup"])


@router.post("/properties", response_model=PropertyOut)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = Property(**payload.model_dump(), org_id=p.org_id, status=PropertyStatus.AVAILABLE)
    stamp(row, p, created=True)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("/properties/{property_id}", response_model=PropertyOut)
def get_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = db.scalar(
        select(Property).where(Property.id == property_id, Property.org_id == p.org_id, Property.is_deleted.is_(False))
    )
    if row is None:
        raise HTTPException(status_code=404, detail="property not found")
    return row


@router.post("/prospects", response_model=ProspectOut)
def create_prospect(payload: ProspectCreate, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    if payload.interested_property_id is not None:
        prop = db.scalar(
            select(Property).where(Property.id == payload.interested_property_id, Property.org_id == p.org_id)
        )
        if prop is None:
            raise HTTPException(status_code=404, detail="property not found")

    row = ProspectiveTenant(**payload.model_dump(), org_id=p.org_id, status=ProspectStatus.LEAD)
    stamp(row, p, created=True)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("/prospects/{prospect_id}", response_model=ProspectOut)
def get_prospect(prospect_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = db.scalar(
        select(ProspectiveTenant).where(
            ProspectiveTenant.id == prospect_id,
            ProspectiveTenant.org_id == p.org_id,
            ProspectiveTenant.is_deleted.is_(False),
        )
    )
    if row is None:
        raise HTTPException(status_code=404, detail="prospect not found")
    return row
