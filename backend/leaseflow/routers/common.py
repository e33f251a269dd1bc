# backend/leaseflow/routers/common.py
from __future__ import annotations

from typing import Any, Optional, Type

from fastapi import HTTPException
from pydantic import BaseModel

from ..domain.results import FAULT, NOT_FOUND, VALIDATION, WorkflowResult

STATUS_BY_KIND = {VALIDATION: 409, NOT_FOUND: 404, FAULT: 500}


def dump(obj: Any, out: Optional[Type[BaseModel]]) -> Any:
    if obj is None or out is None:
        return obj
    if isinstance(obj, (list, tuple)):
        return [out.model_validate(x).model_dump(mode="json") for x in obj]
    return out.model_validate(obj).model_dump(mode="json")


def workflow_response(result: WorkflowResult, out: Optional[Type[BaseModel]] = None) -> dict[str, Any]:
    """Success -> {ok, message, metadata, data}; failure -> HTTPException carrying the result."""
    if not result.ok:
        raise HTTPException(status_code=STATUS_BY_KIND.get(result.kind, 400), detail=result.as_dict())
    return {
        "ok": True,
        "message": result.message,
        "errors": list(result.errors),
        "metadata": dict(result.metadata),
        "data": dump(result.data, out),
    }
