"""Exceptions raised by the API context."""


class InvalidArgumentError(ValueError):
    """Raised when a context or credential is used with missing or invalid input."""

    pass


class AuthenticationError(Exception):
    """Raised when an access token cannot be obtained."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
