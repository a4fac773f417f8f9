"""
User-facing error messages and HTTPException builders.

Messages are kept here so every endpoint reports failures the same way and
implementation details (driver errors, tracebacks) never reach the client.

Guidelines:
- Sentence case, ending with a period
- "Please try again later." for transient failures

Usage:
    from ihs_validity.core.error_responses import (
        ErrorMessages,
        raise_service_unavailable,
    )

    raise_service_unavailable(ErrorMessages.UPSTREAM_UNAVAILABLE)
"""

from typing import NoReturn, Optional

from fastapi import HTTPException, status


class ErrorMessages:
    """Centralized error message constants and templates."""

    # ==========================================================================
    # Bad Request Errors (400)
    # ==========================================================================
    INVALID_TRIM_VALUE = "Trim values must be a fraction between 0 and 0.5 or a boolean."

    # ==========================================================================
    # Service Unavailable Errors (503)
    # ==========================================================================
    UPSTREAM_UNAVAILABLE = (
        "Session data is temporarily unavailable. Please try again later."
    )

    # ==========================================================================
    # Server Errors (500)
    # ==========================================================================
    VALIDITY_FAILED = "Failed to compute validity analytics. Please try again later."
    CORRELATIONS_FAILED = (
        "Failed to compute item correlations. Please try again later."
    )

    @staticmethod
    def invalid_parameter(name: str, reason: str) -> str:
        """Message for a query parameter that parses but cannot be used."""
        return f"Invalid value for '{name}': {reason}."


def raise_bad_request(detail: str) -> NoReturn:
    """Raise a 400 Bad Request."""
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def raise_service_unavailable(detail: str) -> NoReturn:
    """Raise a 503 Service Unavailable for a failed upstream store."""
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


def raise_server_error(detail: str, error_id: Optional[str] = None) -> NoReturn:
    """Raise a 500 Internal Server Error.

    Args:
        detail: User-facing message
        error_id: Optional correlation id appended so support can find the log
    """
    if error_id:
        detail = f"{detail} (Error ID: {error_id})"
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
    )
