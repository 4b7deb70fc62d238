"""
Observability

Structured logging and OpenTelemetry tracing.
"""

from .tracing import (
    init_tracing,
    get_tracer,
    get_current_span,
    get_trace_id,
    create_span,
)
from .logging import configure_logging, get_request_trace_id, set_request_trace_id

__all__ = [
    "init_tracing",
    "get_tracer",
    "get_current_span",
    "get_trace_id",
    "create_span",
    "configure_logging",
    "get_request_trace_id",
    "set_request_trace_id",
]
