from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, Optional
from urllib.parse import urlencode

import httpx
import logging

from core.errors import TokenRefreshError

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
REVOKE_URL = "https://oauth2.googleapis.com/revoke"

DEFAULT_EXPIRES_IN = 3600


def build_authorize_url(*, client_id: str, redirect_uri: str, state: str, scopes: Iterable[str]) -> str:
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": " ".join(scopes),
        # offline + consent so Google hands out a refresh token every time
        "access_type": "offline",
        "prompt": "consent",
        "state": state,
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def _normalize_token_payload(payload: Dict) -> Dict:
    expires_in = int(payload.get("expires_in") or DEFAULT_EXPIRES_IN)
    return {
        "access_token": payload.get("access_token"),
        "refresh_token": payload.get("refresh_token"),
        "expires_in": expires_in,
        "expires_at": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        "scope": payload.get("scope"),
        "token_type": payload.get("token_type"),
    }


def _error_detail(resp) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    return body.get("error_description") or body.get("error") or str(body)


async def exchange_code_for_tokens_async(
    *, client_id: str, client_secret: str, code: str, redirect_uri: str
) -> Dict:
    async with httpx.AsyncClient(timeout=30) as client:
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
        }
        resp = await client.post(TOKEN_URL, data=data)
        if resp.status_code // 100 != 2:
            raise TokenRefreshError(f"Code exchange failed ({resp.status_code}): {_error_detail(resp)}")
        payload = resp.json()
        if not payload.get("access_token"):
            raise TokenRefreshError("Code exchange response did not include an access token")
        return _normalize_token_payload(payload)


async def refresh_tokens_async(*, client_id: str, client_secret: str, refresh_token: Optional[str]) -> Dict:
    """Trade a refresh token for a fresh access token.

    Raises TokenRefreshError when there is no refresh token to use, when Google answers
    with a non-2xx status, or when the body carries no access token. The caller should
    treat all of these as "reconnect required"; nothing here retries.
    """
    if not refresh_token or not refresh_token.strip():
        raise TokenRefreshError("No refresh token available")

    async with httpx.AsyncClient(timeout=30) as client:
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": client_id,
            "client_secret": client_secret,
        }
        resp = await client.post(TOKEN_URL, data=data)
        if resp.status_code // 100 != 2:
            detail = _error_detail(resp)
            logger.error(f"Token refresh rejected ({resp.status_code}): {detail}")
            raise TokenRefreshError(f"Failed to refresh token ({resp.status_code}): {detail}")
        payload = resp.json()
        if not payload.get("access_token"):
            raise TokenRefreshError("Refresh response did not include an access token")
        return _normalize_token_payload(payload)


async def revoke_token_async(*, token: str) -> bool:
    try:
        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.post(REVOKE_URL, data={"token": token})
    except httpx.HTTPError as e:
        logger.warning(f"Google token revoke failed: {e}")
        return False
    if resp.status_code // 100 != 2:
        logger.warning(f"Google token revoke returned {resp.status_code}")
        return False
    return True
