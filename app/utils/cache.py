from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Hashable, Sequence

from app.schemas.market import MarketEntry
from app.utils.time import utcnow


@dataclass(frozen=True)
class CacheEntry:
    key: Hashable
    value: tuple[MarketEntry, ...]
    inserted_at: datetime


class QueryCacheStore:
    """
    Session-wide in-memory map: display key -> last successful result.

    No TTL and no size bound. An entry only ever changes by being replaced
    with the result of a later successful fetch for the same key.
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, CacheEntry] = {}

    def get(self, key: Hashable) -> list[MarketEntry] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return list(entry.value)

    def set(self, key: Hashable, value: Sequence[MarketEntry]) -> CacheEntry:
        entry = CacheEntry(key=key, value=tuple(value), inserted_at=utcnow())
        self._entries[key] = entry
        return entry

    def entry(self, key: Hashable) -> CacheEntry | None:
        return self._entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
