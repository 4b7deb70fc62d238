"""
Standard Error Codes

Error codes for the follow-up API with HTTP status mapping.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """API error codes."""

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"

    # Follow-up errors
    FOLLOW_UP_NOT_FOUND = "FOLLOW_UP_NOT_FOUND"
    FOLLOW_UP_ALREADY_PROCESSED = "FOLLOW_UP_ALREADY_PROCESSED"
    DUPLICATE_PENDING = "DUPLICATE_PENDING"
    INVALID_TRANSITION = "INVALID_TRANSITION"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    COLLABORATOR_ERROR = "COLLABORATOR_ERROR"


# HTTP status code mapping
ERROR_STATUS_CODES = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.NOT_FOUND: 404,
    # Not-found and already-processed look the same to callers
    ErrorCode.FOLLOW_UP_NOT_FOUND: 404,
    ErrorCode.FOLLOW_UP_ALREADY_PROCESSED: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.DUPLICATE_PENDING: 409,
    ErrorCode.INVALID_TRANSITION: 409,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.CONFIGURATION_ERROR: 500,
    ErrorCode.COLLABORATOR_ERROR: 500,
}


def get_status_code(error_code: ErrorCode) -> int:
    """HTTP status code for an error code (500 if unmapped)."""
    return ERROR_STATUS_CODES.get(error_code, 500)
