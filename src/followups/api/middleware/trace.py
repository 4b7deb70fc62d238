"""
Trace ID Middleware

Adds a trace_id to every request for log correlation.
"""

from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ...core.observability import get_request_trace_id, set_request_trace_id


def get_trace_id() -> str:
    """Trace ID of the current request, or a fresh one outside a request."""
    return get_request_trace_id() or str(uuid4())


class TraceMiddleware(BaseHTTPMiddleware):
    """
    Extracts ``X-Trace-ID`` (or generates one), exposes it on
    ``request.state.trace_id`` and echoes it on the response.
    """

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get("X-Trace-ID") or str(uuid4())
        set_request_trace_id(trace_id)
        request.state.trace_id = trace_id

        response = await call_next(request)

        response.headers["X-Trace-ID"] = trace_id
        return response
