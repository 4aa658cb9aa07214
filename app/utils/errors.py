"""
Domain exceptions and HTTPException builders

Services raise the domain exceptions; routers translate them with the
``raise_*`` helpers so every endpoint reports errors the same way.
"""
from typing import NoReturn

from fastapi import HTTPException, status


class ErrorMessages:
    """User-facing error messages"""

    ACTIVE_SESSION_NOT_FOUND = "Active session not found"
    SESSION_NOT_FOUND = "Session not found"
    TEST_NOT_FOUND = "Test not found"
    INVALID_MODE = 'mode must be "Test" or "Practice"'
    IDENTITY_REQUIRED = "Authentication required"
    IDENTITY_INVALID = "Invalid caller identity"


class NotFoundError(LookupError):
    """Base class for lookups that should surface as 404"""

    message = "Not found"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class SessionNotFoundError(NotFoundError):
    """No matching session for this id, owner and state"""

    message = ErrorMessages.ACTIVE_SESSION_NOT_FOUND


class TestNotFoundError(NotFoundError):
    """The referenced test does not exist"""

    __test__ = False  # not a pytest class
    message = ErrorMessages.TEST_NOT_FOUND


class SessionValidationError(ValueError):
    """Request data the session controller cannot accept"""


def raise_bad_request(detail: str) -> NoReturn:
    """Raise a 400 Bad Request exception"""
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def raise_unauthorized(detail: str) -> NoReturn:
    """Raise a 401 Unauthorized exception"""
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def raise_not_found(detail: str) -> NoReturn:
    """Raise a 404 Not Found exception"""
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
