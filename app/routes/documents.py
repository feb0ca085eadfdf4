from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.deps import document_errors, get_current_user_id, get_document_service
from infra.db.engine import get_session
from services.document_service import DocumentService

router = APIRouter()


class DocumentOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str
    name: str
    content: str
    url: Optional[str] = None
    last_modified: Optional[str] = Field(default=None, alias="lastModified")


class DocumentsResponse(BaseModel):
    documents: list[DocumentOut]


@router.get("/documents", response_model=DocumentsResponse, response_model_by_alias=True)
async def list_documents(
    query: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
    service: DocumentService = Depends(get_document_service),
) -> DocumentsResponse:
    """Search Drive when a query is given, otherwise return every supported document."""
    with document_errors():
        if query and query.strip():
            docs = await service.search_documents(db, user_id, query.strip())
        else:
            docs = await service.get_all_documents(db, user_id)
    return DocumentsResponse(documents=[DocumentOut.model_validate(d) for d in docs])


class DocumentSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    url: Optional[str] = None
    last_modified: Optional[str] = Field(default=None, alias="lastModified")


class DocumentSummariesResponse(BaseModel):
    documents: list[DocumentSummary]


@router.get("/docs/search", response_model=DocumentSummariesResponse, response_model_by_alias=True)
async def search_document_metadata(
    q: str = Query(min_length=1),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
    service: DocumentService = Depends(get_document_service),
) -> DocumentSummariesResponse:
    """Name/full-text match over Drive without downloading any content."""
    if not q.strip():
        raise HTTPException(status_code=400, detail="Query parameter is required")
    with document_errors():
        files = await service.search_metadata(db, user_id, q.strip())
    return DocumentSummariesResponse(
        documents=[
            DocumentSummary(id=f.id, name=f.name, url=f.web_view_link, last_modified=f.modified_time)
            for f in files
        ]
    )
