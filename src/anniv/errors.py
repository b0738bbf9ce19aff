"""Exception hierarchy shared by the gateway, admin client and wizard."""

from typing import Optional


class AnnivError(Exception):
    """Base class for all anniv errors."""


class ApiError(AnnivError):
    """A backend call failed: transport error, non-2xx, or unexpected body."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ApiTimeoutError(ApiError):
    """The call exceeded its timeout."""


class MalformedResponseError(ApiError):
    """A 2xx response whose body lacks the expected data shape."""


class AuthExpiredError(AnnivError):
    """Admin credentials are missing, expired, or were rejected with 401."""


class FormValidationError(AnnivError):
    """A local form rule was violated; the message is user-facing."""
