# backend/leaseflow/middleware/structured_logging.py
from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..config import settings
from ..logging_config import correlation

log = logging.getLogger("leaseflow.request")

REQUEST_ID_HEADER = "X-Request-ID"


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds the request's correlation id and writes one access line per request.

    An incoming X-Request-ID is reused so a caller can follow its request into
    the workflow logs and the notifications it triggered; otherwise one is
    generated. The id is echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()
        org_slug = request.headers.get(settings.dev_header_org_slug)
        user_email = request.headers.get(settings.dev_header_user_email)

        with correlation(request.headers.get(REQUEST_ID_HEADER)) as cid:
            status_code = 500
            try:
                response = await call_next(request)
                status_code = response.status_code
                response.headers[REQUEST_ID_HEADER] = cid
                return response
            finally:
                log.info(
                    "http_request %s %s -> %s",
                    request.method,
                    request.url.path,
                    status_code,
                    extra={
                        "event": "http_request",
                        "http_method": request.method,
                        "path": request.url.path,
                        "status_code": status_code,
                        "latency_ms": int((time.perf_counter() - t0) * 1000),
                        "org_slug": org_slug,
                        "user_email": user_email,
                    },
                )
