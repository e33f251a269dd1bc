# backend/leaseflow/routers/audit.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.audit import audit_history, audit_row_to_dict
from ..schemas import AuditEntryOut

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/{entity_type}/{entity_id}", response_model=list[AuditEntryOut])
def entity_history(
    entity_type: str,
    entity_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    rows = audit_history(db, org_id=p.org_id, entity_type=entity_type, entity_id=entity_id)
    return [audit_row_to_dict(r) for r in rows]
