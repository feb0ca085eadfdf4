from __future__ import annotations
from typing import Any, Optional

import httpx

from core.errors import DriveAPIError

DRIVE_API = "https://www.googleapis.com/drive/v3"
DOCS_API = "https://docs.googleapis.com/v1"
SHEETS_API = "https://sheets.googleapis.com/v4"

LIST_FIELDS = "files(id,name,mimeType,webViewLink,modifiedTime)"


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or resp.reason_phrase
    return str(error or body)


class GoogleDriveClient:
    """Bearer-authenticated calls against the Drive, Docs and Sheets REST APIs.

    The caller owns the httpx client; every non-2xx answer becomes a DriveAPIError.
    """

    def __init__(self, http: httpx.AsyncClient, access_token: str):
        self._http = http
        self._headers = {"Authorization": f"Bearer {access_token.strip()}", "Accept": "application/json"}

    async def _get(self, url: str, params: Optional[dict] = None) -> httpx.Response:
        resp = await self._http.get(url, headers=self._headers, params=params)
        if resp.status_code // 100 != 2:
            raise DriveAPIError(resp.status_code, _error_message(resp))
        return resp

    async def list_files(self, q: str, fields: str = LIST_FIELDS, page_size: Optional[int] = None) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"q": q, "fields": fields}
        if page_size:
            params["pageSize"] = page_size
        resp = await self._get(f"{DRIVE_API}/files", params)
        return resp.json().get("files") or []

    async def get_metadata(self, file_id: str) -> dict[str, Any]:
        resp = await self._get(f"{DRIVE_API}/files/{file_id}", {"fields": "id,name,mimeType"})
        return resp.json()

    async def download(self, file_id: str) -> bytes:
        resp = await self._get(f"{DRIVE_API}/files/{file_id}", {"alt": "media"})
        return resp.content

    async def export(self, file_id: str, mime_type: str) -> bytes:
        resp = await self._get(f"{DRIVE_API}/files/{file_id}/export", {"mimeType": mime_type})
        return resp.content

    async def get_document(self, file_id: str) -> dict[str, Any]:
        resp = await self._get(f"{DOCS_API}/documents/{file_id}")
        return resp.json()

    async def get_spreadsheet(self, file_id: str) -> dict[str, Any]:
        resp = await self._get(f"{SHEETS_API}/spreadsheets/{file_id}", {"includeGridData": "true"})
        return resp.json()
