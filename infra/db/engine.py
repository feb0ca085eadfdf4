from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from infra.db import models

# SQLite connections get handed between the event loop and worker threads
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
_engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args)
_SessionLocal = sessionmaker(bind=_engine, autoflush=False, autocommit=False, expire_on_commit=False)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on success, roll back on error, always close."""
    db = _SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_session() -> Iterator[Session]:
    """Request-scoped session for FastAPI routes."""
    with session_scope() as db:
        yield db


def init_db_schema() -> None:
    models.Base.metadata.create_all(bind=_engine)


def drop_db_schema() -> None:
    models.Base.metadata.drop_all(bind=_engine)
