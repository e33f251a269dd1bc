# backend/leaseflow/domain/audit.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import WorkflowAuditLog
from .states import status_value


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if not v:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def record_transition(
    db: Session,
    *,
    org_id: int,
    performed_by: str,
    entity_type: str,
    entity_id: int,
    from_status: Any,
    to_status: Any,
    action: str,
    reason: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> WorkflowAuditLog:
    """
    Stages one transition row on the session.

    Never commits: the row rides the caller's unit of work, so it is persisted
    with the mutation it documents or discarded with it.
    """
    row = WorkflowAuditLog(
        org_id=int(org_id),
        entity_type=entity_type,
        entity_id=int(entity_id),
        from_status=status_value(from_status),
        to_status=status_value(to_status),
        action=action,
        reason=reason,
        metadata_json=_dumps(metadata),
        performed_by=str(performed_by),
        performed_on=datetime.utcnow(),
    )
    db.add(row)
    return row


def audit_history(db: Session, *, org_id: int, entity_type: str, entity_id: int) -> list[WorkflowAuditLog]:
    q = (
        select(WorkflowAuditLog)
        .where(
            WorkflowAuditLog.org_id == int(org_id),
            WorkflowAuditLog.entity_type == entity_type,
            WorkflowAuditLog.entity_id == int(entity_id),
        )
        .order_by(WorkflowAuditLog.performed_on.asc(), WorkflowAuditLog.id.asc())
    )
    return list(db.scalars(q).all())


def audit_row_to_dict(row: WorkflowAuditLog) -> dict[str, Any]:
    return {
        "id": row.id,
        "entity_type": row.entity_type,
        "entity_id": row.entity_id,
        "from_status": row.from_status,
        "to_status": row.to_status,
        "action": row.action,
        "reason": row.reason,
        "metadata": json.loads(row.metadata_json) if row.metadata_json else {},
        "performed_by": row.performed_by,
        "performed_on": row.performed_on,
    }
