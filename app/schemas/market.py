"""Pydantic models for the CoinGecko /coins/markets payload and query inputs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


CURRENCY_OPTIONS: dict[str, str] = {
    "usd": "USD",
    "eur": "EUR",
}


class SortOrder(str, Enum):
    MARKET_CAP_DESC = "market_cap_desc"
    MARKET_CAP_ASC = "market_cap_asc"

    @property
    def label(self) -> str:
        if self is SortOrder.MARKET_CAP_DESC:
            return "Market cap descending"
        return "Market cap ascending"


class MarketEntry(BaseModel):
    """
    One asset's market snapshot.

    Only the fields the table reads are declared; every other field the
    upstream sends (ath, atl, roi, last_updated, ...) is kept as an extra and
    passed through untouched.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: str
    symbol: str
    name: str
    image_url: str = Field(..., alias="image")
    current_price: Optional[float] = None
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = Field(default=None, ge=0)
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class QueryParams:
    """
    One request shape for the markets table.

    Not validated here: the page controller and the HTTP layer check inputs
    before they reach the coordinator.
    """

    currency: str
    sort_order: str
    page: int
    page_size: int

    def to_request_params(self) -> dict[str, str | int]:
        return {
            "vs_currency": self.currency,
            "order": self.sort_order,
            "page": self.page,
            "per_page": self.page_size,
        }
