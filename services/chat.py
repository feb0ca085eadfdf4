from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Literal, Optional

from openai import AsyncOpenAI
from sqlalchemy.orm import Session

from config.settings import settings
from connectors.base import Document
from services.document_service import DocumentService

logger = logging.getLogger(__name__)

Role = Literal["user", "assistant", "system"]
CompleteFn = Callable[[list[dict[str, str]]], Awaitable[str]]

STOP_WORDS = frozenset(
    {
        "the", "and", "for", "about", "what", "which", "who", "when", "where", "why", "how",
        "does", "did", "are", "was", "were", "can", "could", "would", "should", "this", "that",
        "these", "those", "with", "from", "into", "have", "has", "had", "you", "your", "my",
        "our", "their", "any", "all", "find", "search", "show", "tell", "please", "document",
        "documents", "doc", "docs", "file", "files",
    }
)

SYSTEM_PROMPT = """You are a helpful document assistant that answers questions based on the user's Google Docs.

Here are the relevant documents:
{documents}

Previous conversation:
{history}

Answer the user's questions based on the content of their documents. If you don't find relevant information in the documents, acknowledge that and provide a general response. Always be helpful, concise, and accurate."""

NO_DOCUMENTS = "No relevant documents found."


@dataclass
class ChatMessage:
    role: Role
    content: str


@dataclass
class ChatAnswer:
    response: str
    documents: list[dict[str, str]] = field(default_factory=list)


def extract_search_terms(message: str, limit: int = 5) -> list[str]:
    """Pick the words of a question worth sending to Drive search."""
    terms: list[str] = []
    for word in re.findall(r"[\w'-]+", message.lower()):
        word = word.strip("'-")
        if len(word) <= 2 or word in STOP_WORDS or word in terms:
            continue
        terms.append(word)
        if len(terms) >= limit:
            break
    return terms


async def gather_documents(service: DocumentService, db: Session, user_id: str, message: str, limit: int) -> list[Document]:
    """Search Drive for each term of the message; fall back to everything when nothing matches."""
    seen: dict[str, Document] = {}
    for term in extract_search_terms(message, limit):
        for doc in await service.search_documents(db, user_id, term):
            seen.setdefault(doc.id, doc)
    if seen:
        return list(seen.values())
    logger.info(f"No search hits for user {user_id}, falling back to all documents")
    return await service.get_all_documents(db, user_id)


def build_document_context(documents: Iterable[Document], excerpt_chars: int) -> str:
    blocks = [f"Document: {doc.name}\nContent: {doc.content[:excerpt_chars]}...\n\n" for doc in documents]
    return "\n".join(blocks) if blocks else NO_DOCUMENTS


def build_messages(
    message: str,
    history: Iterable[ChatMessage],
    documents: Iterable[Document],
    excerpt_chars: int,
) -> list[dict[str, str]]:
    conversation = "\n".join(f"{m.role}: {m.content}" for m in history)
    system = SYSTEM_PROMPT.format(
        documents=build_document_context(documents, excerpt_chars),
        history=conversation,
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": message},
    ]


class OpenAIChatClient:
    def __init__(self, client: Optional[Any] = None):
        self._client = client or AsyncOpenAI(api_key=settings.OPENAI_API_KEY)

    async def complete(self, messages: list[dict[str, str]]) -> str:
        completion = await self._client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=messages,
            temperature=settings.CHAT_TEMPERATURE,
            max_tokens=settings.CHAT_MAX_TOKENS,
        )
        return completion.choices[0].message.content or ""


async def answer_question(
    *,
    service: DocumentService,
    db: Session,
    user_id: str,
    message: str,
    history: Iterable[ChatMessage],
    complete: CompleteFn,
) -> ChatAnswer:
    documents = await gather_documents(service, db, user_id, message, settings.CHAT_MAX_SEARCH_TERMS)
    messages = build_messages(message, history, documents, settings.CHAT_EXCERPT_CHARS)
    response = await complete(messages)
    return ChatAnswer(
        response=response,
        documents=[
            {"name": doc.name, "preview": doc.content[: settings.CHAT_PREVIEW_CHARS]}
            for doc in documents
        ],
    )
