from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Callable, Optional

from cachetools import TTLCache


@dataclass(frozen=True)
class CacheEntry:
    content: str
    fetched_at: float


class ContentCache:
    """Process-local read-through cache of extracted document text keyed by file id.

    Entries expire ``ttl_seconds`` after they were written and are checked lazily on
    read. Capacity is bounded; once full, the least recently used entry is evicted.
    There is no locking: two requests filling the same key simply both write the same
    text and the last write wins.
    """

    def __init__(self, ttl_seconds: float, max_entries: int, timer: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._timer = timer
        self._entries: TTLCache[str, CacheEntry] = TTLCache(maxsize=max_entries, ttl=ttl_seconds, timer=timer)

    def entry(self, file_id: str) -> Optional[CacheEntry]:
        return self._entries.get(file_id)

    def get(self, file_id: str) -> Optional[str]:
        hit = self.entry(file_id)
        return hit.content if hit is not None else None

    def set(self, file_id: str, content: str) -> CacheEntry:
        entry = CacheEntry(content=content, fetched_at=self._timer())
        self._entries[file_id] = entry
        return entry

    def invalidate(self, file_id: str) -> None:
        self._entries.pop(file_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        # expire() so the count reflects only live entries
        self._entries.expire()
        return len(self._entries)

    def __contains__(self, file_id: str) -> bool:
        return file_id in self._entries
