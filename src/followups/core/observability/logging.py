"""
Structured Logging with Trace Correlation

Configures logging to include the request trace_id and, when a span is
active, the OpenTelemetry span id.
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone

from .tracing import get_current_span, get_trace_id

_RESERVED = frozenset((
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName",
))


# Request-scoped trace id, set by the API trace middleware
request_trace_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_trace_id", default="")


def get_request_trace_id() -> str:
    return request_trace_id_var.get()


def set_request_trace_id(trace_id: str) -> contextvars.Token:
    return request_trace_id_var.set(trace_id)


class StructuredFormatter(logging.Formatter):
    """JSON log formatter with trace context."""

    def format(self, record: logging.LogRecord) -> str:
        span = get_current_span()
        span_id = None
        if span and span.get_span_context().is_valid:
            span_id = format(span.get_span_context().span_id, "016x")

        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "trace_id": getattr(record, "trace_id", None),
            "span_id": span_id,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED or key in log_entry or key.startswith("_"):
                continue
            try:
                json.dumps(value)
                log_entry[key] = value
            except (TypeError, ValueError):
                log_entry[key] = str(value)

        return json.dumps(log_entry)


class TraceContextFilter(logging.Filter):
    """Adds trace_id to every record: request trace id first, then OTel."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_request_trace_id() or get_trace_id() or "no-trace"
        return True


def configure_logging(level: str = "INFO", structured: bool = True, service_name: str = "followups-backend"):
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        structured: Use JSON structured format
        service_name: Service name for logs
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - [%(trace_id)s] %(message)s"
        ))
    handler.addFilter(TraceContextFilter())
    root_logger.addHandler(handler)

    # Set levels for noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)

    logging.info("Logging configured: %s, level=%s, structured=%s", service_name, level, structured)
