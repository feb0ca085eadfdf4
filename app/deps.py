from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException, Request

from config.settings import settings
from connectors.registry import get_connector
from core.errors import ListingError, NotConnectedError, ReconnectRequiredError
from services.chat import OpenAIChatClient
from services.document_service import DocumentService

PROVIDER = "google"


def get_current_user_id(request: Request) -> str:
    """Authenticated user id, put in the session by the upstream auth layer."""
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return str(user_id)


def get_document_service() -> DocumentService:
    return DocumentService(get_connector(PROVIDER), provider=PROVIDER)


def get_chat_client() -> OpenAIChatClient:
    if not settings.OPENAI_API_KEY:
        raise HTTPException(status_code=500, detail="OPENAI_API_KEY not configured")
    return OpenAIChatClient()


@contextmanager
def document_errors() -> Iterator[None]:
    """Map aggregation failures onto HTTP status codes."""
    try:
        yield
    except NotConnectedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ReconnectRequiredError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except ListingError as e:
        raise HTTPException(status_code=500, detail=str(e))
