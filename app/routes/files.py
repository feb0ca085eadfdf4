from __future__ import annotations

import logging

from anyio import to_thread
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from app.deps import get_current_user_id
from infra.file_processing.extract_text import extract_text_from_bytes

logger = logging.getLogger(__name__)

router = APIRouter()


class ExtractResponse(BaseModel):
    name: str
    content: str


@router.post("/files/extract", response_model=ExtractResponse)
async def extract_uploaded_file(
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
) -> ExtractResponse:
    """Extract text from a file uploaded directly rather than read from Drive."""
    name = file.filename or "upload"
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    try:
        content = await to_thread.run_sync(extract_text_from_bytes, data, name)
    except Exception as e:
        logger.error(f"Text extraction failed for upload {name!r} from user {user_id}: {e}")
        raise HTTPException(status_code=422, detail=f"Failed to extract text from {name}: {e}")
    return ExtractResponse(name=name, content=content)
