from __future__ import annotations
import logging
import time
from typing import Awaitable, Callable, Optional

from anyio import to_thread
import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential,
)

from config.settings import settings
from connectors.base import RemoteFile
from connectors.google import mime
from connectors.google.client import GoogleDriveClient
from connectors.google.extractors import extract_text_from_doc, extract_text_from_sheet
from connectors.google.mime import DocumentKind, classify
from connectors.google.query import build_drive_query
from connectors.registry import register
from core.errors import DriveAPIError, RetryExhaustedError
from infra.cache.content_cache import ContentCache
from infra.file_processing.extract_text import decode_text, extract_text_from_docx, extract_text_from_pdf

logger = logging.getLogger(__name__)

UNSUPPORTED_TEMPLATE = "[Unsupported file type: {mime_type}]"
NOT_AVAILABLE_TEMPLATE = "[Text extraction not available for {mime_type}]"
NO_CONTENT_TEMPLATE = "[No content available in {name}]"
ERROR_TEMPLATE = "[Error processing document: {error}]"


class Placeholder(str):
    """Text standing in for document content that could not be extracted. Never cached."""


Handler = Callable[[GoogleDriveClient, str, Optional[str]], Awaitable[str]]


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, DriveAPIError) and exc.is_transient


@register("google")
class GoogleDriveConnector:
    name = "google"

    def __init__(
        self,
        *,
        cache: Optional[ContentCache] = None,
        max_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        retry_max_delay: Optional[float] = None,
        page_size: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache if cache is not None else ContentCache(
            ttl_seconds=settings.CONTENT_CACHE_TTL_SECONDS,
            max_entries=settings.CONTENT_CACHE_MAX_ENTRIES,
        )
        self.max_attempts = settings.FETCH_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.retry_base_delay = settings.FETCH_RETRY_BASE_DELAY_SECONDS if retry_base_delay is None else retry_base_delay
        self.retry_max_delay = settings.FETCH_RETRY_MAX_DELAY_SECONDS if retry_max_delay is None else retry_max_delay
        self.page_size = settings.DRIVE_PAGE_SIZE if page_size is None else page_size
        self.timeout = settings.HTTP_TIMEOUT_SECONDS if timeout is None else timeout
        self._transport = transport

        self._handlers: dict[DocumentKind, Handler] = {
            DocumentKind.RICH_DOCUMENT: self._extract_rich_document,
            DocumentKind.SPREADSHEET: self._extract_spreadsheet,
            DocumentKind.SLIDES: self._extract_slides,
            DocumentKind.PDF: self._extract_pdf,
            DocumentKind.PLAIN_TEXT: self._extract_plain_text,
            DocumentKind.OFFICE_BINARY: self._extract_office_binary,
            DocumentKind.UNSUPPORTED: self._unsupported,
        }
        missing = set(DocumentKind) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No extractor registered for {sorted(k.value for k in missing)}")

    # OAuth helpers
    def build_authorize_url(self, *, client_id: str, redirect_uri: str, state: str) -> str:
        from connectors.google.auth import build_authorize_url

        return build_authorize_url(
            client_id=client_id,
            redirect_uri=redirect_uri,
            state=state,
            scopes=settings.GOOGLE_SCOPES,
        )

    async def exchange_code_for_tokens_async(
        self,
        *,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str,
    ) -> dict:
        from connectors.google.auth import exchange_code_for_tokens_async as _exchange
        return await _exchange(
            client_id=client_id,
            client_secret=client_secret,
            code=code,
            redirect_uri=redirect_uri,
        )

    async def refresh_tokens_async(self, *, client_id: str, client_secret: str, refresh_token: str) -> dict:
        from connectors.google.auth import refresh_tokens_async as _refresh
        return await _refresh(
            client_id=client_id,
            client_secret=client_secret,
            refresh_token=refresh_token,
        )

    async def revoke_token_async(self, *, token: str) -> bool:
        from connectors.google.auth import revoke_token_async as _revoke
        return await _revoke(token=token)

    # Data plane
    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport, follow_redirects=True)

    def build_query(self, text: Optional[str] = None) -> str:
        return build_drive_query(text)

    async def list_files(self, *, access_token: str, query: str) -> list[RemoteFile]:
        async with self._http() as http:
            drive = GoogleDriveClient(http, access_token)
            files = await drive.list_files(query, page_size=self.page_size)
        return [
            RemoteFile(
                id=str(f.get("id")),
                name=f.get("name") or "",
                mime_type=f.get("mimeType"),
                web_view_link=f.get("webViewLink"),
                modified_time=f.get("modifiedTime"),
            )
            for f in files
        ]

    async def fetch_content(self, *, file_id: str, access_token: str) -> str:
        """Return the text of one Drive file.

        Served from the content cache while the entry is younger than its TTL. Otherwise
        metadata and content are fetched and the MIME family picks the extractor. 429/503
        answers retry the whole fetch with jittered exponential backoff, up to
        ``max_attempts``; running out raises RetryExhaustedError. Every other failure
        comes back as a bracketed placeholder instead of an exception.
        """
        if not access_token or not access_token.strip():
            raise ValueError("Invalid access token")

        cached = self.cache.get(file_id)
        if cached is not None:
            logger.debug(f"Cache hit for document {file_id}")
            return cached

        started = time.monotonic()
        try:
            content = await self._fetch_with_retry(file_id, access_token)
        except RetryExhaustedError as e:
            logger.error(f"Giving up on document {file_id} after {e.attempts} attempts: {e.last_error}")
            raise
        except Exception as e:
            logger.error(f"Error processing document {file_id}: {e}")
            return Placeholder(ERROR_TEMPLATE.format(error=e))

        if not isinstance(content, Placeholder):
            self.cache.set(file_id, content)
        logger.debug(f"Fetched document {file_id} in {(time.monotonic() - started) * 1000:.0f}ms")
        return content

    async def _fetch_with_retry(self, file_id: str, access_token: str) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_random_exponential(multiplier=self.retry_base_delay, max=self.retry_max_delay),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._fetch_uncached(file_id, access_token)
        except RetryError as e:
            raise RetryExhaustedError(file_id, self.max_attempts, e.last_attempt.exception()) from e
        raise AssertionError("retry loop exited without a result")

    async def _fetch_uncached(self, file_id: str, access_token: str) -> str:
        async with self._http() as http:
            drive = GoogleDriveClient(http, access_token)
            meta = await drive.get_metadata(file_id)
            mime_type = meta.get("mimeType")
            name = meta.get("name") or file_id
            kind = classify(mime_type)
            logger.debug(f"Document {file_id} ({name}) is {mime_type} -> {kind.value}")

            content = await self._handlers[kind](drive, file_id, mime_type)

        if not content:
            return Placeholder(NO_CONTENT_TEMPLATE.format(name=name))
        logger.debug(f"Extracted {len(content)} characters from {file_id}")
        return content

    async def _extract_rich_document(self, drive: GoogleDriveClient, file_id: str, mime_type: Optional[str]) -> str:
        doc = await drive.get_document(file_id)
        return extract_text_from_doc((doc.get("body") or {}).get("content") or [])

    async def _extract_spreadsheet(self, drive: GoogleDriveClient, file_id: str, mime_type: Optional[str]) -> str:
        sheet = await drive.get_spreadsheet(file_id)
        return extract_text_from_sheet(sheet.get("sheets") or [])

    async def _extract_slides(self, drive: GoogleDriveClient, file_id: str, mime_type: Optional[str]) -> str:
        return decode_text(await drive.export(file_id, mime.PLAIN_TEXT))

    async def _extract_pdf(self, drive: GoogleDriveClient, file_id: str, mime_type: Optional[str]) -> str:
        data = await drive.download(file_id)
        return await to_thread.run_sync(extract_text_from_pdf, data)

    async def _extract_plain_text(self, drive: GoogleDriveClient, file_id: str, mime_type: Optional[str]) -> str:
        return decode_text(await drive.download(file_id))

    async def _extract_office_binary(self, drive: GoogleDriveClient, file_id: str, mime_type: Optional[str]) -> str:
        if mime_type not in mime.EXTRACTABLE_OFFICE_TYPES:
            return Placeholder(NOT_AVAILABLE_TEMPLATE.format(mime_type=mime_type))
        data = await drive.download(file_id)
        return await to_thread.run_sync(extract_text_from_docx, data)

    async def _unsupported(self, drive: GoogleDriveClient, file_id: str, mime_type: Optional[str]) -> str:
        return Placeholder(UNSUPPORTED_TEMPLATE.format(mime_type=mime_type))
