# app/config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List


def parse_csv(value: str | None, default: List[str]) -> List[str]:
    if not value:
        return default
    items = [x.strip() for x in value.split(",")]
    return [x for x in items if x]


def parse_int(value: str | None, default: int) -> int:
    if value is None or value.strip() == "":
        return default
    return int(value)


def parse_int_csv(value: str | None, default: List[int]) -> List[int]:
    """
    Supports "10,20,50". Order is preserved, duplicates dropped.
    """
    if not value:
        return default
    out: List[int] = []
    for part in parse_csv(value, []):
        n = int(part)
        if n <= 0:
            raise ValueError(f"Bad PAGE_SIZE_OPTIONS part: {part}")
        if n not in out:
            out.append(n)
    return out or default


@dataclass(frozen=True)
class Settings:
    COINGECKO_BASE_URL: str
    HTTP_TIMEOUT_SECONDS: int
    DEFAULT_CURRENCY: str
    DEFAULT_ORDER: str
    DEFAULT_PAGE_SIZE: int
    PAGE_SIZE_OPTIONS: List[int]
    MARKET_TOTAL_ITEMS: int
    LOG_LEVEL: str

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            COINGECKO_BASE_URL=os.getenv("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3"),
            HTTP_TIMEOUT_SECONDS=parse_int(os.getenv("HTTP_TIMEOUT_SECONDS"), 10),
            DEFAULT_CURRENCY=os.getenv("DEFAULT_CURRENCY", "usd"),
            DEFAULT_ORDER=os.getenv("DEFAULT_ORDER", "market_cap_desc"),
            DEFAULT_PAGE_SIZE=parse_int(os.getenv("DEFAULT_PAGE_SIZE"), 10),
            PAGE_SIZE_OPTIONS=parse_int_csv(os.getenv("PAGE_SIZE_OPTIONS"), [10, 20, 50]),
            MARKET_TOTAL_ITEMS=parse_int(os.getenv("MARKET_TOTAL_ITEMS"), 1000),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
