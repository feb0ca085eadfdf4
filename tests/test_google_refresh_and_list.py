from __future__ import annotations

import functools
import types

import anyio
import httpx
import pytest

from connectors.google.connector import GoogleDriveConnector
from connectors.registry import get_connector
from core.errors import DriveAPIError, TokenRefreshError


class FakeResp:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = str(self._payload)

    def json(self):
        return self._payload


def _fake_httpx(resp, calls):
    class FakeAsyncClient:
        def __init__(self, timeout=30):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def post(self, url, data=None):
            calls.append((url, data))
            return resp

    return types.SimpleNamespace(AsyncClient=FakeAsyncClient)


def _refresh(refresh_token="old_refresh"):
    google = get_connector("google")
    return anyio.run(
        functools.partial(
            google.refresh_tokens_async,
            client_id="id",
            client_secret="sec",
            refresh_token=refresh_token,
        )
    )


def test_google_refresh_tokens(monkeypatch):
    import connectors.google.auth as google_auth

    calls = []
    resp = FakeResp(payload={"access_token": "new_access", "expires_in": 1800, "token_type": "Bearer"})
    monkeypatch.setattr(google_auth, "httpx", _fake_httpx(resp, calls))

    result = _refresh()
    assert result["access_token"] == "new_access"
    assert result["refresh_token"] is None
    assert result["expires_in"] == 1800
    assert result["expires_at"] is not None

    url, data = calls[0]
    assert url == "https://oauth2.googleapis.com/token"
    assert data["grant_type"] == "refresh_token"
    assert data["refresh_token"] == "old_refresh"


def test_refresh_without_refresh_token_fails_without_calling_google(monkeypatch):
    import connectors.google.auth as google_auth

    calls = []
    monkeypatch.setattr(google_auth, "httpx", _fake_httpx(FakeResp(), calls))

    with pytest.raises(TokenRefreshError):
        _refresh(refresh_token="")
    assert calls == []


def test_refresh_rejected_by_google(monkeypatch):
    import connectors.google.auth as google_auth

    resp = FakeResp(status_code=400, payload={"error": "invalid_grant", "error_description": "Token has been expired or revoked."})
    monkeypatch.setattr(google_auth, "httpx", _fake_httpx(resp, []))

    with pytest.raises(TokenRefreshError, match="expired or revoked"):
        _refresh()


def test_refresh_response_without_access_token(monkeypatch):
    import connectors.google.auth as google_auth

    monkeypatch.setattr(google_auth, "httpx", _fake_httpx(FakeResp(payload={"expires_in": 3600}), []))

    with pytest.raises(TokenRefreshError):
        _refresh()


def test_google_list_files():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["authorization"]
        seen["q"] = request.url.params["q"]
        seen["pageSize"] = request.url.params["pageSize"]
        return httpx.Response(
            200,
            json={
                "files": [
                    {"id": "f1", "name": "Plan", "mimeType": "application/vnd.google-apps.document",
                     "webViewLink": "https://docs.google.com/document/d/f1", "modifiedTime": "2024-05-01T10:00:00Z"},
                    {"id": "f2", "name": "Budget", "mimeType": "application/vnd.google-apps.spreadsheet"},
                ]
            },
        )

    google = GoogleDriveConnector(transport=httpx.MockTransport(handler), page_size=10)
    files = anyio.run(functools.partial(google.list_files, access_token="tok", query="trashed = false"))

    assert [f.id for f in files] == ["f1", "f2"]
    assert files[0].web_view_link == "https://docs.google.com/document/d/f1"
    assert files[1].modified_time is None
    assert seen == {"auth": "Bearer tok", "q": "trashed = false", "pageSize": "10"}


def test_google_list_files_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"code": 403, "message": "Insufficient Permission"}})

    google = GoogleDriveConnector(transport=httpx.MockTransport(handler))
    with pytest.raises(DriveAPIError) as exc_info:
        anyio.run(functools.partial(google.list_files, access_token="tok", query=""))
    assert exc_info.value.status_code == 403
    assert "Insufficient Permission" in str(exc_info.value)


def test_default_listing_page_matches_drive_default():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["pageSize"] = request.url.params["pageSize"]
        return httpx.Response(200, json={"files": []})

    google = GoogleDriveConnector(transport=httpx.MockTransport(handler))
    anyio.run(functools.partial(google.list_files, access_token="tok", query="trashed = false"))
    assert seen["pageSize"] == "100"
