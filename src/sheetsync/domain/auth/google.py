"""
Google OAuth 2.0 authorization-code flow and token management.

The web layer drives the redirect/callback; this module builds URLs, talks
to Google's token and userinfo endpoints, and refreshes expired tokens.
"""

import base64
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests
from loguru import logger

from sheetsync.core.config import GoogleConfig

from .exceptions import TokenExchangeError

# Google OAuth URLs
AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/userinfo.email",
]


def generate_state() -> str:
    """Random CSRF state token."""
    return base64.urlsafe_b64encode(secrets.token_bytes(32)).decode("utf-8").rstrip("=")


def build_authorization_url(config: GoogleConfig, state: str) -> str:
    """Consent-screen URL requesting offline access with forced consent.

    Forcing consent makes Google return a refresh token on every login.
    """
    params = {
        "client_id": config.client_id,
        "redirect_uri": config.redirect_url,
        "response_type": "code",
        "scope": " ".join(GOOGLE_SCOPES),
        "access_type": "offline",
        "prompt": "consent",
        "state": state,
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def _with_expiry(token_data: Dict[str, Any]) -> Dict[str, Any]:
    expires_in = token_data.get("expires_in", 3600)  # Default 1 hour
    expires_at = datetime.now() + timedelta(seconds=expires_in)
    token_data["expires_at"] = expires_at.isoformat()
    return token_data


def exchange_code(config: GoogleConfig, code: str) -> Dict[str, Any]:
    """Exchange an authorization code for tokens.

    Returns:
        Token data with 'expires_at' added

    Raises:
        TokenExchangeError: If Google rejects the code or is unreachable
    """
    try:
        response = requests.post(
            TOKEN_URL,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": config.redirect_url,
                "client_id": config.client_id,
                "client_secret": config.client_secret,
            },
            timeout=30,
        )
        response.raise_for_status()
    except requests.HTTPError as e:
        detail = e.response.text if e.response is not None else ""
        logger.error(f"Google token exchange failed: {e} {detail}")
        raise TokenExchangeError("OAuth exchange failed") from e
    except requests.RequestException as e:
        logger.error(f"Google token exchange error: {e}")
        raise TokenExchangeError("OAuth exchange failed") from e

    token_data = _with_expiry(response.json())
    logger.info(f"Google authentication successful, token expires: {token_data['expires_at']}")
    return token_data


def fetch_user_email(access_token: str) -> str:
    """Look up the email of the account that granted the token.

    Raises:
        TokenExchangeError: If user info cannot be fetched or has no email
    """
    try:
        response = requests.get(
            USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=30,
        )
        response.raise_for_status()
        email = response.json().get("email")
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Failed to fetch Google user info: {e}")
        raise TokenExchangeError("Failed to fetch user info") from e

    if not email:
        raise TokenExchangeError("Failed to decode user info")
    return email


def is_token_expired(token_data: Dict[str, Any]) -> bool:
    """Check if token is expired (with 5-minute buffer)."""
    if not token_data.get("expires_at"):
        return True

    expires_at = datetime.fromisoformat(token_data["expires_at"])
    buffer = timedelta(minutes=5)

    return datetime.now() >= (expires_at - buffer)


def refresh_access_token(
    config: GoogleConfig, token_data: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """Refresh an expired token.

    Returns:
        New token data (refresh token preserved), or None if refresh fails
    """
    refresh_token_value = token_data.get("refresh_token")
    if not config.client_id or not config.client_secret or not refresh_token_value:
        logger.warning("Missing credentials or refresh token for Google token refresh")
        return None

    try:
        response = requests.post(
            TOKEN_URL,
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token_value,
                "client_id": config.client_id,
                "client_secret": config.client_secret,
            },
            timeout=30,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Failed to refresh Google token: {e}")
        return None

    new_token_data = _with_expiry(response.json())

    # Google omits the refresh token on refresh responses
    if not new_token_data.get("refresh_token"):
        new_token_data["refresh_token"] = refresh_token_value
    new_token_data.setdefault("token_type", token_data.get("token_type", "Bearer"))

    logger.info(f"Google token refreshed successfully, expires: {new_token_data['expires_at']}")
    return new_token_data
