"""
Global Error Handler

Catches exceptions and returns standardized error responses:

    {"success": false, "error": "<message>", "code": "<ERROR_CODE>", "trace_id": "..."}
"""

import logging
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ...core.errors import FollowUpError
from ..error_codes import ErrorCode
from ..exceptions import APIException, from_domain_error

logger = logging.getLogger(__name__)


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", None) or str(uuid4())


def error_response(status_code: int, code: str, message: str, trace_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code, "trace_id": trace_id},
    )


def register_error_handlers(app: FastAPI):
    """
    Register all error handlers on the FastAPI app:
    - APIException (API errors raised by routes)
    - FollowUpError (core errors that escaped a route)
    - RequestValidationError (FastAPI validation)
    - Exception (catch-all)
    """

    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        trace_id = exc.trace_id or _trace_id(request)
        logger.warning(
            "API Error: %s - %s",
            exc.code.value,
            exc.message,
            extra={"error_code": exc.code.value, "path": request.url.path},
        )
        return error_response(exc.status_code, exc.code.value, exc.message, trace_id)

    @app.exception_handler(FollowUpError)
    async def domain_exception_handler(request: Request, exc: FollowUpError):
        return await api_exception_handler(request, from_domain_error(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(loc) for loc in error["loc"]) for error in exc.errors()]
        logger.warning("Validation Error: %s", ", ".join(fields), extra={"path": request.url.path})
        return error_response(400, ErrorCode.VALIDATION_ERROR.value, "Request validation failed", _trace_id(request))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled Exception: %s: %s",
            type(exc).__name__,
            exc,
            exc_info=exc,
            extra={"path": request.url.path},
        )
        # Don't expose internal details
        return error_response(500, ErrorCode.INTERNAL_ERROR.value, "An internal error occurred", _trace_id(request))
