from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class RemoteFile:
    """File metadata as returned by a provider listing call. Never persisted."""

    id: str
    name: str
    mime_type: Optional[str]
    web_view_link: Optional[str]
    modified_time: Optional[str]


@dataclass
class Document:
    """A remote file paired with its extracted text, for the length of one request."""

    id: str
    name: str
    content: str
    url: Optional[str]
    last_modified: Optional[str]

    @classmethod
    def from_remote(cls, file: RemoteFile, content: str) -> "Document":
        return cls(
            id=file.id,
            name=file.name,
            content=content,
            url=file.web_view_link,
            last_modified=file.modified_time,
        )


class Connector(Protocol):
    name: str

    # OAuth helpers
    def build_authorize_url(self, *, client_id: str, redirect_uri: str, state: str) -> str: ...
    async def exchange_code_for_tokens_async(
        self,
        *,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str,
    ) -> dict: ...

    async def refresh_tokens_async(self, *, client_id: str, client_secret: str, refresh_token: str) -> dict: ...
    async def revoke_token_async(self, *, token: str) -> bool: ...

    # Data plane
    def build_query(self, text: Optional[str] = None) -> str: ...
    async def list_files(self, *, access_token: str, query: str) -> list[RemoteFile]: ...
    async def fetch_content(self, *, file_id: str, access_token: str) -> str: ...
