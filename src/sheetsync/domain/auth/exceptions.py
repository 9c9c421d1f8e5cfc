"""Authentication exceptions for error handling."""


class AuthError(Exception):
    """Base exception for Google authentication operations."""

    pass


class NotAuthenticatedError(AuthError):
    """Raised when no usable stored credential exists."""

    pass


class TokenExchangeError(AuthError):
    """Raised when Google rejects a code exchange or user info lookup."""

    pass
