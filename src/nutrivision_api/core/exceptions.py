"""Custom exception classes for the API."""

from typing import Any


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int = 400, details: Any = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} with id '{resource_id}' not found",
            status_code=404,
            details={"resource": resource, "id": resource_id},
        )


class DatabaseError(APIError):
    """Database operation error."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message=message, status_code=500, details=details)


class AuthenticationError(APIError):
    """Missing or invalid credentials."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message=message, status_code=401)


class UpstreamError(APIError):
    """The model gateway failed to produce a response."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message=message, status_code=502, details=details)
