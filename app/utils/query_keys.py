from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass
from typing import Any

from app.schemas.market import QueryParams


QUERY_NAMESPACE = "GET_MARKET_COINS_QUERIES"


def canonical_json(payload: Any) -> str:
    """
    Serialize payload using deterministic ordering and formatting.
    """
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def _plain(value: Any) -> Any:
    # str-based enums hash by member name, so keys always hold the raw value
    return getattr(value, "value", value)


@dataclass(frozen=True)
class DisplayKey:
    """Identity used for cache lookups and writes. Excludes page size."""

    currency: str
    sort_order: str
    page: int

    def digest(self) -> str:
        return key_digest(self)


@dataclass(frozen=True)
class FetchKey:
    """Identity used to launch and deduplicate fetches. Includes page size."""

    currency: str
    sort_order: str
    page: int
    page_size: int

    @property
    def display(self) -> DisplayKey:
        return DisplayKey(self.currency, self.sort_order, self.page)

    def digest(self) -> str:
        return key_digest(self)


def build_display_key(params: QueryParams) -> DisplayKey:
    return DisplayKey(
        currency=str(_plain(params.currency)),
        sort_order=str(_plain(params.sort_order)),
        page=int(params.page),
    )


def build_fetch_key(params: QueryParams) -> FetchKey:
    return FetchKey(
        currency=str(_plain(params.currency)),
        sort_order=str(_plain(params.sort_order)),
        page=int(params.page),
        page_size=int(params.page_size),
    )


def key_digest(key: DisplayKey | FetchKey) -> str:
    """
    Short stable fingerprint for log lines. Field order never matters.
    """
    payload = {"ns": QUERY_NAMESPACE, "kind": type(key).__name__, **asdict(key)}
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()[:12]
