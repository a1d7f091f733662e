"""Error types shared by the Words API client and the services built on it."""
from typing import Optional

COMMUNICATION_ERROR_MESSAGE = "failed to communicate with server"
GENERIC_ERROR_MESSAGE = "request failed"


class ApiError(Exception):
    """Base error with a user-facing message and the underlying cause."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class CommunicationError(ApiError):
    """The server could not be reached or its response was not JSON."""

    def __init__(self, cause: Optional[BaseException] = None, message: str = COMMUNICATION_ERROR_MESSAGE):
        super().__init__(message, cause)


class ServerError(ApiError):
    """The server answered with a non-success status."""

    def __init__(self, message: str, status: int, cause: Optional[BaseException] = None):
        super().__init__(message, cause)
        self.status = status


class NotFoundError(ApiError):
    """The requested user or word does not exist."""

    def __init__(self, message: str, status: int = 404, cause: Optional[BaseException] = None):
        super().__init__(message, cause)
        self.status = status


class ValidationError(ApiError):
    """Input was rejected locally before anything was sent."""


class InvalidTransitionError(Exception):
    """A review session action was attempted from a state that does not allow it."""
