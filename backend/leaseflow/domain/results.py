# backend/leaseflow/domain/results.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")

OK = "ok"
VALIDATION = "validation"
NOT_FOUND = "not_found"
FAULT = "fault"


@dataclass
class WorkflowResult(Generic[T]):
    """
    Outcome of one workflow operation. Operations return this instead of
    raising; `kind` tells callers (routers, jobs) how to surface a failure.
    """

    ok: bool
    data: Optional[T] = None
    errors: list[str] = field(default_factory=list)
    message: str = ""
    kind: str = OK
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, data: Optional[T] = None, message: str = "", **metadata: Any) -> "WorkflowResult[T]":
        return cls(ok=True, data=data, message=message, kind=OK, metadata=dict(metadata))

    @classmethod
    def fail(cls, *errors: str, kind: str = VALIDATION, message: str | None = None) -> "WorkflowResult[T]":
        errs = [e for e in errors if e]
        return cls(ok=False, errors=errs, message=message or "; ".join(errs), kind=kind)

    @classmethod
    def not_found(cls, what: str) -> "WorkflowResult[T]":
        return cls.fail(f"{what} not found", kind=NOT_FOUND)

    @classmethod
    def fault(cls, message: str) -> "WorkflowResult[T]":
        return cls.fail(message, kind=FAULT)

    def as_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "kind": self.kind,
            "message": self.message,
            "errors": list(self.errors),
            "metadata": dict(self.metadata),
        }
