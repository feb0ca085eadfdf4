from __future__ import annotations
import json
from typing import Any, Optional

import redis
from config.settings import settings

OAUTH_STATE_KEY_FMT = "oauth_state:{state}"
OAUTH_STATE_TTL_SECONDS = 10 * 60

_redis_client: redis.Redis | None = None


def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


def save_oauth_state(state: str, payload: dict[str, Any], ttl_seconds: int = OAUTH_STATE_TTL_SECONDS) -> None:
    get_redis().setex(OAUTH_STATE_KEY_FMT.format(state=state), ttl_seconds, json.dumps(payload))


def pop_oauth_state(state: str) -> Optional[dict[str, Any]]:
    """Return the payload stored for ``state`` and delete it, so a state is usable once."""
    r = get_redis()
    key = OAUTH_STATE_KEY_FMT.format(state=state)
    raw = r.get(key)
    if not raw:
        return None
    r.delete(key)
    return json.loads(raw)
