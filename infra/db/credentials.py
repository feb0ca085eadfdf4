"""Token store: per-user, per-provider OAuth credentials."""

from __future__ import annotations
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from infra.db.models import Credential

_UPDATABLE_FIELDS = ("access_token", "refresh_token", "expires_at", "scopes")


def get_credential(db: Session, user_id: str, provider: str, *, for_update: bool = False) -> Optional[Credential]:
    """Load the credential for (user_id, provider).

    With ``for_update`` the row stays locked until the surrounding transaction ends, which
    makes check-expiry / refresh / persist a single read-modify-write on databases that
    support row locks.
    """
    stmt = select(Credential).where(Credential.user_id == user_id, Credential.provider == provider)
    if for_update:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalar_one_or_none()


def upsert_credential(db: Session, user_id: str, provider: str, **fields: Any) -> Credential:
    unknown = set(fields) - set(_UPDATABLE_FIELDS)
    if unknown:
        raise TypeError(f"Unknown credential fields: {sorted(unknown)}")

    cred = get_credential(db, user_id, provider, for_update=True)
    if cred is None:
        cred = Credential(user_id=user_id, provider=provider)
        db.add(cred)
    for name, value in fields.items():
        # Google only returns a refresh token on first consent; keep the one we have
        if name == "refresh_token" and not value:
            continue
        setattr(cred, name, value)
    db.flush()
    return cred


def delete_credential(db: Session, user_id: str, provider: str) -> bool:
    res = db.execute(
        delete(Credential).where(Credential.user_id == user_id, Credential.provider == provider)
    )
    return bool(res.rowcount)
