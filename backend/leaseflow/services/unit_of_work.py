# backend/leaseflow/services/unit_of_work.py
from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.orm import Session

from ..domain.results import WorkflowResult
from ..logging_config import get_correlation_id
from .notifications import LoggingNotificationService, NotificationService

log = logging.getLogger("leaseflow.workflow")

T = TypeVar("T")

# how many chained causes are appended to a fault message
MAX_INNER_DEPTH = 2


def fault_message(exc: BaseException) -> str:
    """
    "Workflow operation failed: <exc> | Inner: <cause> | Inner(2): <cause of cause>"
    """
    parts = [f"Workflow operation failed: {exc}"]
    inner = exc.__cause__ or exc.__context__
    depth = 1
    while inner is not None and depth <= MAX_INNER_DEPTH:
        label = "Inner" if depth == 1 else f"Inner({depth})"
        parts.append(f"{label}: {inner}")
        inner = inner.__cause__ or inner.__context__
        depth += 1
    return " | ".join(parts)


class UnitOfWork:
    """
    Runs one workflow operation atomically against a Session.

    - op() returns ok      -> flush + commit, then after-commit hooks
    - op() returns failure -> rollback + expunge_all (nothing staged survives)
    - op() raises          -> same as failure, converted to a fault result

    execute() never raises. Objects loaded before a failed operation are
    detached afterwards; callers re-fetch by id.
    """

    def __init__(self, db: Session, *, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier: NotificationService = notifier or LoggingNotificationService()
        self._after_commit: list[Callable[[], None]] = []

    # -------------------------
    # hooks
    # -------------------------
    def after_commit(self, fn: Callable[[], None]) -> None:
        self._after_commit.append(fn)

    def notify(self, event: str, **payload: Any) -> None:
        """Queue a notification; it is sent only if the current operation commits."""
        cid = get_correlation_id()
        if cid:
            payload.setdefault("correlation_id", cid)
        self.after_commit(lambda: self.notifier.notify(event, payload))

    # -------------------------
    # execution
    # -------------------------
    def execute(self, op: Callable[[], WorkflowResult[T]], *, name: str = "workflow") -> WorkflowResult[T]:
        self._after_commit = []
        try:
            result = op()
            if result is None:
                raise RuntimeError(f"{name} returned no result")

            if not result.ok:
                self._discard()
                log.info("workflow_rejected %s: %s", name, result.message, extra={"action": name})
                return result

            self.db.flush()
            self.db.commit()
        except Exception as e:
            log.exception("workflow_fault %s", name, extra={"action": name})
            self._discard()
            return WorkflowResult.fault(fault_message(e))

        self._run_after_commit(name)
        return result

    def _discard(self) -> None:
        self._after_commit = []
        try:
            self.db.rollback()
        except Exception:
            log.exception("workflow_rollback_failed")
        try:
            # rollback alone leaves mutated instances in the identity map
            self.db.expunge_all()
        except Exception:
            log.exception("workflow_discard_failed")

    def _run_after_commit(self, name: str) -> None:
        hooks, self._after_commit = self._after_commit, []
        for fn in hooks:
            try:
                fn()
            except Exception:
                log.warning("after_commit_hook_failed %s", name, exc_info=True, extra={"action": name})
