from __future__ import annotations

import logging
import uuid
from typing import Optional
from urllib.parse import urlencode, urlparse

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.deps import PROVIDER, get_current_user_id
from config.settings import settings
from connectors.registry import get_connector, list_connectors
from core.errors import TokenRefreshError
from core.redis import pop_oauth_state, save_oauth_state
from infra.db.credentials import delete_credential, get_credential, upsert_credential
from infra.db.engine import get_session

logger = logging.getLogger(__name__)

router = APIRouter()


def _app_redirect(path: str = "/", **params: str) -> RedirectResponse:
    url = settings.APP_URL.rstrip("/") + path
    if params:
        url = f"{url}?{urlencode(params)}"
    return RedirectResponse(url=url, status_code=302)


def _is_app_url(url: str) -> bool:
    """Only bounce back into our own frontend: same scheme and host:port as APP_URL."""
    target, app_url = urlparse(url), urlparse(settings.APP_URL)
    return (target.scheme, target.netloc) == (app_url.scheme, app_url.netloc)


@router.get("/google/connect")
async def oauth_connect(
    desired_return_url: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
) -> RedirectResponse:
    """Start the Google consent flow for the signed-in user."""
    if PROVIDER not in list_connectors():
        raise HTTPException(status_code=400, detail="Google connector not registered")
    if not settings.GOOGLE_CLIENT_ID:
        raise HTTPException(status_code=500, detail="GOOGLE_CLIENT_ID not configured")
    state = uuid.uuid4().hex
    if desired_return_url and not _is_app_url(desired_return_url):
        desired_return_url = None

    # The callback is hit by the browser coming back from Google; remember who started it
    save_oauth_state(state, {"user_id": user_id, "desired_return_url": desired_return_url or ""})

    google = get_connector(PROVIDER)
    url = google.build_authorize_url(
        client_id=settings.GOOGLE_CLIENT_ID,
        redirect_uri=settings.GOOGLE_REDIRECT_URI,
        state=state,
    )
    return RedirectResponse(url=url, status_code=302)


@router.get("/google/callback")
async def oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_session),
) -> RedirectResponse:
    if error:
        return _app_redirect("/", error=error)
    if not code:
        raise HTTPException(status_code=400, detail="No code provided")
    if not state:
        raise HTTPException(status_code=400, detail="Invalid OAuth state")

    # Verify and consume state
    state_obj = pop_oauth_state(state)
    if not state_obj:
        raise HTTPException(status_code=400, detail="Invalid OAuth state")

    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        raise HTTPException(status_code=500, detail="Google client credentials not configured")

    google = get_connector(PROVIDER)
    try:
        token_info = await google.exchange_code_for_tokens_async(
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            code=code,
            redirect_uri=settings.GOOGLE_REDIRECT_URI,
        )
    except (TokenRefreshError, httpx.HTTPError) as e:
        logger.error(f"Error exchanging code for token: {e}")
        return _app_redirect("/", error="token_exchange_failed")

    upsert_credential(
        db,
        state_obj["user_id"],
        PROVIDER,
        access_token=token_info["access_token"],
        refresh_token=token_info.get("refresh_token"),
        expires_at=token_info["expires_at"],
        scopes=token_info.get("scope"),
    )
    logger.info(f"Connected Google account for user {state_obj['user_id']}")

    if state_obj.get("desired_return_url"):
        return RedirectResponse(url=state_obj["desired_return_url"], status_code=302)
    return _app_redirect("/dashboard")


class DisconnectResponse(BaseModel):
    disconnected: bool
    revoked: bool


@router.delete("/google", response_model=DisconnectResponse)
async def oauth_disconnect(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> DisconnectResponse:
    """Revoke the Google grant and forget the stored credential."""
    cred = get_credential(db, user_id, PROVIDER)
    if cred is None:
        raise HTTPException(status_code=404, detail="Google account not connected")

    google = get_connector(PROVIDER)
    # Revoking the refresh token also kills its access tokens
    revoked = await google.revoke_token_async(token=cred.refresh_token or cred.access_token)
    delete_credential(db, user_id, PROVIDER)
    return DisconnectResponse(disconnected=True, revoked=revoked)
