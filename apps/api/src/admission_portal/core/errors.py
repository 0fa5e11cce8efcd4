"""
Service Errors

Base exception for service-layer failures and the helper routers use to
turn them into HTTP responses.
"""

import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class PortalServiceError(Exception):
    """Base exception for admission portal service errors."""

    error_code = "SERVICE_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


def to_http_exception(error: PortalServiceError) -> HTTPException:
    """Build the HTTPException for a service error."""
    return HTTPException(
        status_code=error.status_code,
        detail={
            "error": error.error_code,
            "message": error.message,
        },
    )


def internal_error(error: Exception, context: str) -> HTTPException:
    """Log an unexpected error and build the generic 500 response."""
    logger.exception(f"Unexpected error {context}: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )
