"""Aggregates Drive listing results with their extracted content for one user."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from config.settings import settings
from connectors.base import Connector, Document, RemoteFile
from core.errors import (
    DriveAPIError,
    ListingError,
    NotConnectedError,
    ReconnectRequiredError,
    RetryExhaustedError,
    TokenRefreshError,
)
from infra.db.credentials import get_credential

logger = logging.getLogger(__name__)

RETRY_EXHAUSTED_TEMPLATE = "[Error processing document: {error}]"


class DocumentService:
    def __init__(self, connector: Connector, provider: str = "google"):
        self.connector = connector
        self.provider = provider

    async def ensure_access_token(self, db: Session, user_id: str) -> str:
        """Return a usable access token, refreshing and persisting it first if expired.

        The credential row is locked for the whole check / refresh / persist sequence and
        the new token is committed before it is handed out.
        """
        cred = get_credential(db, user_id, self.provider, for_update=True)
        if cred is None:
            raise NotConnectedError(self.provider)

        if not cred.is_expired(skew_seconds=settings.TOKEN_REFRESH_SKEW_SECONDS):
            # Release the row lock; nothing to write
            db.commit()
            return cred.access_token

        logger.info(f"🔄 Access token for user {user_id} expired, refreshing")
        try:
            tok = await self.connector.refresh_tokens_async(
                client_id=settings.GOOGLE_CLIENT_ID or "",
                client_secret=settings.GOOGLE_CLIENT_SECRET or "",
                refresh_token=cred.refresh_token or "",
            )
        except (TokenRefreshError, httpx.HTTPError) as e:
            db.rollback()
            logger.error(f"❌ Token refresh failed for user {user_id}: {e}")
            raise ReconnectRequiredError(self.provider, str(e)) from e

        cred.access_token = tok["access_token"]
        cred.expires_at = tok.get("expires_at") or datetime.now(timezone.utc)
        if tok.get("refresh_token"):
            cred.refresh_token = tok["refresh_token"]
        if tok.get("scope"):
            cred.scopes = tok["scope"]
        db.commit()
        return cred.access_token

    def build_query(self, query: Optional[str] = None) -> str:
        return self.connector.build_query(query)

    async def search_documents(self, db: Session, user_id: str, query: str) -> list[Document]:
        return await self._aggregate(db, user_id, self.build_query(query))

    async def get_all_documents(self, db: Session, user_id: str) -> list[Document]:
        return await self._aggregate(db, user_id, self.build_query())

    async def search_metadata(self, db: Session, user_id: str, query: str) -> list[RemoteFile]:
        """Listing only: matching files without fetching any content."""
        _, files = await self._list(db, user_id, self.build_query(query))
        return files

    async def _list(self, db: Session, user_id: str, q: str) -> tuple[str, list[RemoteFile]]:
        access_token = await self.ensure_access_token(db, user_id)
        try:
            files = await self.connector.list_files(access_token=access_token, query=q)
        except (DriveAPIError, httpx.HTTPError) as e:
            logger.error(f"❌ Drive listing failed for user {user_id}: {e}")
            raise ListingError(f"Failed to list documents: {e}") from e
        logger.info(f"🎯 Listing returned {len(files)} files for user {user_id}")
        return access_token, files

    async def _aggregate(self, db: Session, user_id: str, q: str) -> list[Document]:
        access_token, files = await self._list(db, user_id, q)

        documents: list[Document] = []
        # One file at a time; a bad file never sinks the batch
        for file in files:
            try:
                content = await self.connector.fetch_content(file_id=file.id, access_token=access_token)
            except RetryExhaustedError as e:
                content = RETRY_EXHAUSTED_TEMPLATE.format(error=e)
            except Exception as e:
                logger.error(f"Error fetching content for document {file.id}: {e}")
                continue
            documents.append(Document.from_remote(file, content))
        return documents
