"""Domain errors raised by services and dependencies.

Each error is an ``HTTPException`` so it can be raised anywhere in the request
path; ``main`` renders them as ``{"error": <message>}``.
"""
from typing import Optional

from fastapi import HTTPException, status


class EventHubError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(status_code=self.status_code, detail=self.message)

    def to_body(self) -> dict:
        return {"error": self.message, **self.extra}


class ValidationError(EventHubError):
    """Missing or malformed required fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class AlreadyAttending(EventHubError):
    """The user already attends another event."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "You are already attending another event"


class NotFound(EventHubError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class AuthError(EventHubError):
    """Missing (401) or rejected (403) credential."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Invalid token"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class StoreUnavailable(EventHubError):
    """The store failed or timed out; nothing was committed, safe to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Store unavailable, please retry"
