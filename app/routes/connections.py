from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.deps import PROVIDER, get_current_user_id
from infra.db.credentials import get_credential
from infra.db.engine import get_session

router = APIRouter()


class ConnectionsResponse(BaseModel):
    google: bool


@router.get("/user/connections", response_model=ConnectionsResponse)
async def user_connections(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> ConnectionsResponse:
    return ConnectionsResponse(google=get_credential(db, user_id, PROVIDER) is not None)
