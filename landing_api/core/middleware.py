import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from landing_api.core.sanitizer import hash_identifier

logger = logging.getLogger("landing_api.access")


@dataclass
class RequestContext:
    """Per-request correlation data. Never persisted."""

    request_id: str
    started_at: float = field(default_factory=time.perf_counter)
    client_ip: Optional[str] = None
    identity: Optional[str] = None
    stage: str = "received"

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started_at) * 1000


def new_request_id() -> str:
    return str(uuid.uuid4())


def get_request_context(request: Request) -> RequestContext:
    """Return the context created by RequestIdMiddleware, creating one if absent."""
    context = getattr(request.state, "context", None)
    if context is None:
        context = RequestContext(request_id=new_request_id())
        request.state.context = context
        request.state.request_id = context.request_id
    return context


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add X-Request-ID header for log correlation.

    A fresh ID is generated for every request; client-supplied IDs are not
    trusted because anonymous rate-limit keys derive from it.

    The request ID is:
    - Available in request.state.context / request.state.request_id
    - Bound into structlog contextvars for every log line of the request
    - Returned in response headers for client correlation
    """

    async def dispatch(self, request: Request, call_next):
        context = RequestContext(request_id=new_request_id())
        request.state.context = context
        request.state.request_id = context.request_id

        structlog.contextvars.bind_contextvars(request_id=context.request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers["X-Request-ID"] = context.request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    One access-log line per request, severity following the status code.
    Client IPs are hashed before logging.
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        client_host = request.client.host if request.client else "unknown"
        logger.log(
            level,
            "%s %s %s (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "event_type": "http_request",
                "request_id": getattr(request.state, "request_id", None),
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "client_ip_hash": hash_identifier(client_host),
            },
        )
        return response
