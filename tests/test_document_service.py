from __future__ import annotations

import functools
from datetime import datetime, timedelta, timezone

import anyio
import httpx
import pytest

from connectors.base import RemoteFile
from connectors.google.query import build_drive_query, escape_query_value
from core.errors import (
    DriveAPIError,
    ListingError,
    NotConnectedError,
    ReconnectRequiredError,
    RetryExhaustedError,
    TokenRefreshError,
)
from infra.db.credentials import get_credential, upsert_credential
from services.document_service import DocumentService


class FakeConnector:
    name = "google"

    def __init__(self, files=None, contents=None):
        self.files = files or []
        self.contents = contents or {}
        self.events: list[tuple] = []
        self.refresh_result: dict | Exception = {
            "access_token": "fresh",
            "refresh_token": None,
            "expires_at": datetime.now(timezone.utc) + timedelta(hours=1),
            "scope": None,
        }
        self.listing_error: Exception | None = None

    async def refresh_tokens_async(self, *, client_id, client_secret, refresh_token):
        self.events.append(("refresh", refresh_token))
        if isinstance(self.refresh_result, Exception):
            raise self.refresh_result
        return self.refresh_result

    def build_query(self, text=None):
        return build_drive_query(text)

    async def list_files(self, *, access_token, query):
        self.events.append(("list", access_token, query))
        if self.listing_error:
            raise self.listing_error
        return self.files

    async def fetch_content(self, *, file_id, access_token):
        self.events.append(("fetch", file_id, access_token))
        value = self.contents[file_id]
        if isinstance(value, Exception):
            raise value
        return value


def _file(file_id, name=None):
    return RemoteFile(
        id=file_id,
        name=name or f"{file_id}.txt",
        mime_type="text/plain",
        web_view_link=f"https://drive.google.com/file/d/{file_id}",
        modified_time="2024-05-01T10:00:00Z",
    )


def _store(db, *, expires_in: timedelta, refresh_token="ref"):
    upsert_credential(
        db, "u1", "google",
        access_token="stale" if expires_in.total_seconds() <= 0 else "valid",
        refresh_token=refresh_token,
        expires_at=datetime.now(timezone.utc) + expires_in,
    )
    db.commit()


def _all(service, db, user_id="u1"):
    return anyio.run(functools.partial(service.get_all_documents, db, user_id))


def test_valid_token_is_used_without_refresh(db):
    _store(db, expires_in=timedelta(hours=1))
    connector = FakeConnector(files=[_file("a")], contents={"a": "alpha"})
    docs = _all(DocumentService(connector), db)

    assert [d.content for d in docs] == ["alpha"]
    assert connector.events[0][:2] == ("list", "valid")
    assert not any(e[0] == "refresh" for e in connector.events)


def test_expired_token_refreshed_once_and_persisted_before_listing(db):
    _store(db, expires_in=timedelta(minutes=-5))
    connector = FakeConnector(files=[_file("a"), _file("b")], contents={"a": "alpha", "b": "beta"})
    _all(DocumentService(connector), db)

    kinds = [e[0] for e in connector.events]
    assert kinds == ["refresh", "list", "fetch", "fetch"]
    assert connector.events[0] == ("refresh", "ref")
    assert connector.events[1][1] == "fresh"
    assert all(e[2] == "fresh" for e in connector.events[2:])

    db.expire_all()
    cred = get_credential(db, "u1", "google")
    assert cred.access_token == "fresh"
    # Google left the refresh token out of the response; the stored one survives
    assert cred.refresh_token == "ref"
    assert not cred.is_expired()


def test_token_inside_refresh_window_is_refreshed(db):
    _store(db, expires_in=timedelta(minutes=2))
    connector = FakeConnector()
    _all(DocumentService(connector), db)
    assert connector.events[0][0] == "refresh"


def test_missing_credential(db):
    connector = FakeConnector()
    with pytest.raises(NotConnectedError) as exc_info:
        _all(DocumentService(connector), db)
    assert str(exc_info.value) == "Google account not connected"
    assert connector.events == []


@pytest.mark.parametrize(
    "failure",
    [TokenRefreshError("invalid_grant"), httpx.ConnectError("connection refused")],
)
def test_refresh_failure_requires_reconnect(db, failure):
    _store(db, expires_in=timedelta(minutes=-5))
    connector = FakeConnector()
    connector.refresh_result = failure
    with pytest.raises(ReconnectRequiredError):
        _all(DocumentService(connector), db)
    assert [e[0] for e in connector.events] == ["refresh"]

    db.expire_all()
    assert get_credential(db, "u1", "google").access_token == "stale"


def test_listing_failure(db):
    _store(db, expires_in=timedelta(hours=1))
    connector = FakeConnector()
    connector.listing_error = DriveAPIError(500, "Internal Error")
    with pytest.raises(ListingError):
        _all(DocumentService(connector), db)


def test_one_entry_per_file_even_when_some_fail(db):
    _store(db, expires_in=timedelta(hours=1))
    files = [_file("a"), _file("b"), _file("c")]
    connector = FakeConnector(
        files=files,
        contents={
            "a": "alpha",
            "b": "[Error processing document: 404 File not found: b.]",
            "c": RetryExhaustedError("c", 3, DriveAPIError(429, "Rate Limit Exceeded")),
        },
    )
    docs = _all(DocumentService(connector), db)

    assert [d.id for d in docs] == ["a", "b", "c"]
    assert docs[0].url == "https://drive.google.com/file/d/a"
    assert docs[0].last_modified == "2024-05-01T10:00:00Z"
    assert docs[1].content.startswith("[Error processing document:")
    assert docs[2].content.startswith("[Error processing document:")
    assert "after 3 attempts" in docs[2].content


def test_unexpected_fetch_failure_skips_file(db):
    _store(db, expires_in=timedelta(hours=1))
    connector = FakeConnector(
        files=[_file("a"), _file("b")],
        contents={"a": RuntimeError("boom"), "b": "beta"},
    )
    docs = _all(DocumentService(connector), db)
    assert [d.id for d in docs] == ["b"]


def test_search_uses_escaped_query(db):
    _store(db, expires_in=timedelta(hours=1))
    connector = FakeConnector()
    anyio.run(functools.partial(DocumentService(connector).search_documents, db, "u1", "bob's plan"))

    (_, _, q), = connector.events
    assert "name contains 'bob\\'s plan'" in q
    assert "fullText contains 'bob\\'s plan'" in q
    assert q.endswith("trashed = false")


def test_build_drive_query_without_text():
    q = build_drive_query()
    assert "contains" not in q
    assert "mimeType = 'application/vnd.google-apps.document'" in q
    assert "mimeType = 'application/pdf'" in q
    assert q.endswith(" and trashed = false")


def test_build_drive_query_name_only():
    q = build_drive_query("budget", mime_types=["text/plain"], full_text=False)
    assert q == "name contains 'budget' and (mimeType = 'text/plain') and trashed = false"


def test_escape_query_value():
    assert escape_query_value("a\\b'c") == "a\\\\b\\'c"


def test_upsert_updates_in_place(db):
    _store(db, expires_in=timedelta(hours=1))
    upsert_credential(db, "u1", "google", access_token="second", refresh_token="")
    db.commit()
    cred = get_credential(db, "u1", "google")
    assert cred.access_token == "second"
    assert cred.refresh_token == "ref"


def test_upsert_rejects_unknown_fields(db):
    with pytest.raises(TypeError):
        upsert_credential(db, "u1", "google", password="hunter2")


def test_metadata_search_lists_without_fetching(db):
    _store(db, expires_in=timedelta(hours=1))
    connector = FakeConnector(files=[_file("a"), _file("b")])
    files = anyio.run(functools.partial(DocumentService(connector).search_metadata, db, "u1", "plan"))

    assert [f.id for f in files] == ["a", "b"]
    assert [e[0] for e in connector.events] == ["list"]
    assert "name contains 'plan'" in connector.events[0][2]
