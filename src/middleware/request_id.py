"""Request ID tracing middleware — adds X-Request-ID to every response.

Also captures request provenance (client IP, user agent) so the audit trail
can record where a moderation action came from without threading the
request object through the service layer.
"""
from __future__ import annotations

import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Context vars accessible from anywhere during a request lifecycle
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


@dataclass(frozen=True)
class Provenance:
    request_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


provenance_var: ContextVar[Provenance] = ContextVar("provenance", default=Provenance())


def current_provenance() -> Provenance:
    """Provenance of the request being served (all None outside a request)."""
    return provenance_var.get()


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every request/response for tracing.

    - If the client sends X-Request-ID, we honor it
    - Otherwise we generate a UUID4
    - The ID and client provenance are set in ContextVars for loggers and audit
    - Response always includes X-Request-ID header
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        rid = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(rid)
        provenance_var.set(Provenance(
            request_id=rid,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        ))
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
