from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.deps import document_errors, get_chat_client, get_current_user_id, get_document_service
from core.errors import DocumentServiceError
from infra.db.engine import get_session
from services.chat import ChatMessage, OpenAIChatClient, answer_question
from services.document_service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter()


class ChatMessageIn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    history: list[ChatMessageIn] = Field(default_factory=list)


class DocumentPreview(BaseModel):
    name: str
    preview: str


class ChatResponse(BaseModel):
    response: str
    documents: list[DocumentPreview]


@router.post("/chat", response_model=ChatResponse)
async def chat(
    req: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
    service: DocumentService = Depends(get_document_service),
    llm: OpenAIChatClient = Depends(get_chat_client),
) -> ChatResponse:
    with document_errors():
        try:
            answer = await answer_question(
                service=service,
                db=db,
                user_id=user_id,
                message=req.message,
                history=[ChatMessage(role=m.role, content=m.content) for m in req.history],
                complete=llm.complete,
            )
        except DocumentServiceError:
            raise
        except Exception as e:
            logger.error(f"Chat generation failed for user {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to generate response")
    return ChatResponse(
        response=answer.response,
        documents=[DocumentPreview(**d) for d in answer.documents],
    )
