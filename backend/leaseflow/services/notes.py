# backend/leaseflow/services/notes.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..models import Note

log = logging.getLogger("leaseflow.notes")


class NoteService:
    """Free-text notes attached to any entity. Best-effort: never fails a workflow."""

    def __init__(self, db: Session, actor: Principal):
        self.db = db
        self.actor = actor

    def add_note(self, entity_type: str, entity_id: int, text: str) -> Optional[Note]:
        if not (text or "").strip():
            return None
        try:
            row = Note(
                org_id=self.actor.active_organization_id(),
                entity_type=entity_type,
                entity_id=int(entity_id),
                content=text.strip(),
                created_by=self.actor.current_user_id(),
                created_at=datetime.utcnow(),
            )
            self.db.add(row)
            return row
        except Exception:
            log.warning(
                "note_add_failed",
                exc_info=True,
                extra={"org_id": self.actor.org_id, "entity_type": entity_type, "entity_id": entity_id},
            )
            return None

    def list_notes(self, entity_type: str, entity_id: int) -> list[Note]:
        q = (
            select(Note)
            .where(
                Note.org_id == self.actor.active_organization_id(),
                Note.entity_type == entity_type,
                Note.entity_id == int(entity_id),
            )
            .order_by(Note.id.asc())
        )
        return list(self.db.scalars(q).all())
