# backend/leaseflow/services/notifications.py
from __future__ import annotations

import logging
from typing import Any, Protocol

log = logging.getLogger("leaseflow.notifications")

APPLICATION_SUBMITTED = "application.submitted"
APPLICATION_APPROVED = "application.approved"
APPLICATION_DENIED = "application.denied"
APPLICATION_WITHDRAWN = "application.withdrawn"
LEASE_OFFER_GENERATED = "lease_offer.generated"
LEASE_OFFER_ACCEPTED = "lease_offer.accepted"
LEASE_OFFER_DECLINED = "lease_offer.declined"
LEASE_OFFER_EXPIRED = "lease_offer.expired"
LEASE_RENEWED = "lease.renewed"
LEASE_NOTICE_RECORDED = "lease.notice_recorded"
LEASE_TERMINATED = "lease.terminated"
DEPOSIT_REFUNDED = "deposit.refunded"


class NotificationService(Protocol):
    def notify(self, event: str, payload: dict[str, Any]) -> None: ...


class LoggingNotificationService:
    """Default sink: one structured log line per event. Delivery lives elsewhere."""

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        log.info(
            "notification %s",
            event,
            extra={
                "event": event,
                "org_id": payload.get("org_id"),
                "entity_type": payload.get("entity_type"),
                "entity_id": payload.get("entity_id"),
            },
        )


class RecordingNotificationService:
    """Keeps sent events in memory (used by tests and dry runs)."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict[str, Any]]] = []

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        self.sent.append((event, dict(payload)))

    def events(self) -> list[str]:
        return [e for e, _ in self.sent]
