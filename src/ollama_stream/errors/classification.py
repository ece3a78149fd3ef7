"""
Error classification for HTTP failures from the model server.
"""

from __future__ import annotations

from enum import Enum


class ErrorClass(str, Enum):
    """Standard error classification."""

    INVALID_REQUEST = "invalid_request"
    """Malformed request body or unsupported parameter."""

    NOT_FOUND = "not_found"
    """Unknown model or endpoint."""

    TIMEOUT = "timeout"
    """Request timed out on the server or a gateway in front of it."""

    RATE_LIMITED = "rate_limited"
    """Throttled; retryable with backoff."""

    SERVER_ERROR = "server_error"
    """Transient server-side failure (5xx), e.g. a model runner crash."""

    OVERLOADED = "overloaded"
    """Service temporarily unavailable, e.g. still loading the model."""

    OTHER = "other"
    """Anything else."""


_RETRYABLE_CLASSES: set[ErrorClass] = {
    ErrorClass.TIMEOUT,
    ErrorClass.RATE_LIMITED,
    ErrorClass.SERVER_ERROR,
    ErrorClass.OVERLOADED,
}

_STATUS_MAPPING: dict[int, ErrorClass] = {
    400: ErrorClass.INVALID_REQUEST,
    404: ErrorClass.NOT_FOUND,
    408: ErrorClass.TIMEOUT,
    422: ErrorClass.INVALID_REQUEST,
    429: ErrorClass.RATE_LIMITED,
    500: ErrorClass.SERVER_ERROR,
    502: ErrorClass.SERVER_ERROR,
    503: ErrorClass.OVERLOADED,
    504: ErrorClass.TIMEOUT,
}


def classify_http_status(status_code: int) -> ErrorClass:
    """Map an HTTP status code to an error class.

    Args:
        status_code: HTTP status code

    Returns:
        The matching ErrorClass, falling back on the status family
    """
    if status_code in _STATUS_MAPPING:
        return _STATUS_MAPPING[status_code]
    if 500 <= status_code < 600:
        return ErrorClass.SERVER_ERROR
    if 400 <= status_code < 500:
        return ErrorClass.INVALID_REQUEST
    return ErrorClass.OTHER


def is_retryable(error_class: ErrorClass) -> bool:
    """Check whether an error class is worth retrying."""
    return error_class in _RETRYABLE_CLASSES
