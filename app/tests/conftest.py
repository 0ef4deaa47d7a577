from __future__ import annotations

import asyncio
from typing import Any

import pytest

from app.schemas.market import MarketEntry, QueryParams


def make_entry(rank: int, **overrides: Any) -> MarketEntry:
    payload: dict[str, Any] = {
        "id": f"coin-{rank}",
        "symbol": f"c{rank}",
        "name": f"Coin {rank}",
        "image": f"https://assets.test/coins/{rank}.png",
        "current_price": 1000.0 / rank,
        "market_cap": 1_000_000_000 - rank,
        "market_cap_rank": rank,
        "circulating_supply": 21_000_000.0,
        "total_supply": 21_000_000.0,
        "max_supply": None,
        "ath": 2000.0 / rank,
        "last_updated": "2024-01-01T00:00:00.000Z",
    }
    payload.update(overrides)
    return MarketEntry.model_validate(payload)


def page_entries(page: int, page_size: int) -> list[MarketEntry]:
    start = (page - 1) * page_size + 1
    return [make_entry(rank) for rank in range(start, start + page_size)]


def _key(params: QueryParams) -> tuple[str, str, int, int]:
    return (params.currency, params.sort_order, params.page, params.page_size)


class FakeFetcher:
    """
    Stand-in for the CoinGecko fetcher.

    Returns page_entries(page, page_size) unless a failure is registered for
    the params. With gated=True every call blocks until release(params).
    """

    def __init__(self, *, gated: bool = False) -> None:
        self.gated = gated
        self.calls: list[QueryParams] = []
        self.failures: dict[tuple[str, str, int, int], BaseException] = {}
        self._gates: dict[tuple[str, str, int, int], asyncio.Event] = {}

    def fail(self, params: QueryParams, exc: BaseException) -> None:
        self.failures[_key(params)] = exc

    def release(self, params: QueryParams) -> None:
        self._gate(params).set()

    def _gate(self, params: QueryParams) -> asyncio.Event:
        return self._gates.setdefault(_key(params), asyncio.Event())

    async def __call__(self, params: QueryParams) -> list[MarketEntry]:
        self.calls.append(params)
        if self.gated:
            await self._gate(params).wait()
        exc = self.failures.get(_key(params))
        if exc is not None:
            raise exc
        return page_entries(params.page, params.page_size)


@pytest.fixture()
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture()
def gated_fetcher() -> FakeFetcher:
    return FakeFetcher(gated=True)
