# backend/leaseflow/services/transitions.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.audit import record_transition
from ..domain.states import status_value, table_for

log = logging.getLogger("leaseflow.workflow.transitions")


def stamp(entity: Any, actor: Principal, *, created: bool = False) -> None:
    now = datetime.utcnow()
    if created:
        entity.created_at = now
        entity.created_by = actor.current_user_id()
    else:
        entity.updated_at = now
        entity.updated_by = actor.current_user_id()


def change_status(
    db: Session,
    *,
    actor: Principal,
    entity: Any,
    entity_type: str,
    to_status: Any,
    action: str,
    reason: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
    attr: str = "status",
) -> bool:
    """
    Sets entity.<attr> and stages the matching audit row.
    Returns False (and records nothing) when the status is already to_status.

    The caller's guard decides whether the move is allowed. Edges missing from
    the entity's transition table still apply but are logged.
    """
    from_status = getattr(entity, attr)
    if from_status == to_status:
        return False

    table = table_for(entity_type)
    if table is not None and not table.is_valid_transition(from_status, to_status):
        log.info(
            "transition outside table %s %s -> %s",
            entity_type,
            status_value(from_status),
            status_value(to_status),
            extra={
                "event": "transition_outside_table",
                "org_id": actor.active_organization_id(),
                "entity_type": entity_type,
                "entity_id": getattr(entity, "id", None),
                "action": action,
            },
        )

    setattr(entity, attr, to_status)
    stamp(entity, actor)
    db.add(entity)

    record_transition(
        db,
        org_id=actor.active_organization_id(),
        performed_by=actor.current_user_id(),
        entity_type=entity_type,
        entity_id=entity.id,
        from_status=from_status,
        to_status=to_status,
        action=action,
        reason=reason,
        metadata=metadata,
    )
    return True


def record_creation(
    db: Session,
    *,
    actor: Principal,
    entity: Any,
    entity_type: str,
    action: str,
    reason: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
    attr: str = "status",
) -> None:
    """Audit row for a newly created entity (from_status is empty). Entity must be flushed."""
    record_transition(
        db,
        org_id=actor.active_organization_id(),
        performed_by=actor.current_user_id(),
        entity_type=entity_type,
        entity_id=entity.id,
        from_status=None,
        to_status=getattr(entity, attr),
        action=action,
        reason=reason,
        metadata=metadata,
    )
