"""Google OAuth login routes.

A successful callback stores the token and wakes the sync worker.
"""

import threading

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse, RedirectResponse
from loguru import logger

from sheetsync.core.config import Config
from sheetsync.core.database import upsert_token
from sheetsync.domain.auth import google
from sheetsync.domain.auth.credentials import AuthReadySignal
from sheetsync.domain.auth.exceptions import TokenExchangeError

from ..deps import get_config, get_db, get_signal

router = APIRouter()

# CSRF states issued by /login and not yet redeemed
_pending_states: set[str] = set()
_states_lock = threading.Lock()


def remember_state(state: str) -> None:
    with _states_lock:
        _pending_states.add(state)


def redeem_state(state: str) -> bool:
    """Consume a state token. Returns False if it was never issued."""
    with _states_lock:
        if state in _pending_states:
            _pending_states.discard(state)
            return True
        return False


@router.get("/google/login")
async def google_login(config: Config = Depends(get_config)):
    if not config.google.client_id:
        raise HTTPException(503, "Google OAuth is not configured (GOOGLE_CLIENT_ID)")

    state = google.generate_state()
    remember_state(state)
    return RedirectResponse(
        google.build_authorization_url(config.google, state), status_code=307
    )


@router.get("/google/callback")
async def google_callback(
    code: str = "",
    state: str = "",
    error: str = "",
    db=Depends(get_db),
    config: Config = Depends(get_config),
    signal: AuthReadySignal = Depends(get_signal),
):
    if not redeem_state(state):
        logger.warning("OAuth callback with unknown state")
        raise HTTPException(400, "Invalid OAuth state")

    if error or not code:
        logger.error(f"Authorization error from Google: {error or 'missing code'}")
        raise HTTPException(400, f"Authorization failed: {error or 'missing code'}")

    try:
        token_data = google.exchange_code(config.google, code)
        email = google.fetch_user_email(token_data["access_token"])
    except TokenExchangeError as e:
        raise HTTPException(500, str(e))

    try:
        upsert_token(db, email, token_data)
    except Exception as e:
        logger.error(f"DB error storing token: {e}")
        raise HTTPException(500, "Failed to save token")

    if signal.notify():
        logger.info("Signaled worker that login is complete")
    else:
        logger.debug("Login signal already pending")

    return PlainTextResponse(f"Login Successful! Token stored for {email}")
