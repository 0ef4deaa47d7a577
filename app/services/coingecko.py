"""Helpers for interacting with the public CoinGecko API."""

from __future__ import annotations

import logging

import httpx
from pydantic import TypeAdapter

from app.schemas.market import MarketEntry, QueryParams


COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"
COINS_MARKETS_PATH = "/coins/markets"
DEFAULT_HEADERS = {"Content-Type": "application/json"}

logger = logging.getLogger("coin_markets.coingecko")

_entries_adapter = TypeAdapter(list[MarketEntry])


def build_client(base_url: str = COINGECKO_BASE_URL, timeout: float = 10.0) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=base_url, headers=DEFAULT_HEADERS, timeout=timeout)


class CoinGeckoFetcher:
    """
    Single-attempt fetch of one /coins/markets page.

    Raises the raw httpx / pydantic exception on failure; classification is
    the caller's job. Holds no state besides the optional shared client.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str = COINGECKO_BASE_URL,
        timeout: float = 10.0,
    ) -> None:
        self._client = client
        self._base_url = base_url
        self._timeout = timeout

    async def fetch(self, params: QueryParams) -> list[MarketEntry]:
        request_params = params.to_request_params()
        logger.debug("GET %s | params=%s", COINS_MARKETS_PATH, request_params)

        if self._client is not None:
            response = await self._client.get(COINS_MARKETS_PATH, params=request_params)
        else:
            async with build_client(self._base_url, self._timeout) as client:
                response = await client.get(COINS_MARKETS_PATH, params=request_params)

        response.raise_for_status()
        return _entries_adapter.validate_python(response.json())
