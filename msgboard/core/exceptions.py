# msgboard/core/exceptions.py
"""
Domain-specific exceptions for the message board.

These exceptions carry business-focused messages and are converted to HTTP
errors at the API layer via ``to_http_exception``.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        # "error" keeps the body readable by clients that predate problem details
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
                "error": self.message,
            },
        )


class ValidationException(DomainException):
    """Raised when submitted input is rejected (blank or oversized text)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested message does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class SubscriberClosedException(Exception):
    """Raised when delivering to a subscriber whose connection is gone."""
