"""Auth domain - Google OAuth and credential-backed mirror access."""

from .credentials import AuthReadySignal, CredentialProvider
from .exceptions import AuthError, NotAuthenticatedError, TokenExchangeError

__all__ = [
    "AuthReadySignal",
    "CredentialProvider",
    "AuthError",
    "NotAuthenticatedError",
    "TokenExchangeError",
]
