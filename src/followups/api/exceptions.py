"""
API Exception Classes

Exceptions that map to standard error responses, plus the translation from
domain errors raised by the core.
"""

from typing import Optional

from ..core.errors import (
    AlreadyProcessedError,
    AuthenticationError,
    CollaboratorError,
    ConfigurationError,
    DuplicatePendingError,
    FollowUpError,
    InvalidTransitionError,
    NotFoundError as FollowUpNotFoundError,
    ValidationError as FollowUpValidationError,
)
from .error_codes import ErrorCode, get_status_code


class APIException(Exception):
    """
    Base exception for API errors.

    The error handler catches these and returns a standardized error body.
    """

    def __init__(self, code: ErrorCode, message: str, trace_id: Optional[str] = None):
        self.code = code
        self.message = message
        self.trace_id = trace_id
        self.status_code = get_status_code(code)
        super().__init__(message)


class ValidationError(APIException):
    """HTTP Status: 400"""

    def __init__(self, message: str, trace_id: Optional[str] = None):
        super().__init__(code=ErrorCode.VALIDATION_ERROR, message=message, trace_id=trace_id)


class UnauthorizedError(APIException):
    """HTTP Status: 401"""

    def __init__(self, message: str = "Invalid signature", trace_id: Optional[str] = None):
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message, trace_id=trace_id)


class NotFoundError(APIException):
    """HTTP Status: 404"""

    def __init__(self, message: str = "Not found", code: ErrorCode = ErrorCode.NOT_FOUND, trace_id: Optional[str] = None):
        super().__init__(code=code, message=message, trace_id=trace_id)


class CollaboratorFailure(APIException):
    """HTTP Status: 500"""

    def __init__(self, message: str, trace_id: Optional[str] = None):
        super().__init__(code=ErrorCode.COLLABORATOR_ERROR, message=message, trace_id=trace_id)


def from_domain_error(exc: FollowUpError) -> APIException:
    """Translate a core error into its API counterpart."""
    if isinstance(exc, FollowUpValidationError):
        return ValidationError(exc.message)
    if isinstance(exc, AuthenticationError):
        return UnauthorizedError(exc.message)
    if isinstance(exc, FollowUpNotFoundError):
        return NotFoundError(exc.message, code=ErrorCode.FOLLOW_UP_NOT_FOUND)
    if isinstance(exc, AlreadyProcessedError):
        return NotFoundError(exc.message, code=ErrorCode.FOLLOW_UP_ALREADY_PROCESSED)
    if isinstance(exc, DuplicatePendingError):
        return APIException(ErrorCode.DUPLICATE_PENDING, exc.message)
    if isinstance(exc, InvalidTransitionError):
        return APIException(ErrorCode.INVALID_TRANSITION, exc.message)
    if isinstance(exc, CollaboratorError):
        return CollaboratorFailure(exc.message)
    if isinstance(exc, ConfigurationError):
        return APIException(ErrorCode.CONFIGURATION_ERROR, "Service is misconfigured")
    return APIException(ErrorCode.INTERNAL_ERROR, exc.message)
