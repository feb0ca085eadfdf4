from __future__ import annotations

import os
import tempfile

# Must be set before config.settings is imported anywhere
_TMP_DIR = tempfile.mkdtemp(prefix="docs-assistant-tests-")
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("APP_URL", "http://localhost:3000")

import pytest  # noqa: E402

from connectors.registry import reset_connectors  # noqa: E402
from infra.db import engine as db_engine  # noqa: E402


class DummyRedis:
    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def setex(self, key: str, ttl: int, value: str) -> None:
        self.store[key] = value
        self.ttls[key] = ttl

    def get(self, key: str) -> str | None:
        return self.store.get(key)

    def delete(self, key: str) -> int:
        return 1 if self.store.pop(key, None) is not None else 0


@pytest.fixture(autouse=True)
def _schema():
    db_engine.init_db_schema()
    yield
    db_engine.drop_db_schema()
    reset_connectors()


@pytest.fixture
def db():
    session = db_engine._SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def dummy_redis(monkeypatch):
    import core.redis as core_redis

    dummy = DummyRedis()
    monkeypatch.setattr(core_redis, "get_redis", lambda: dummy)
    return dummy
