# app/main.py
from __future__ import annotations

from fastapi import FastAPI

from app.api.health import router as health_router
from app.api.market import router as market_router

from app.config.settings import get_settings
from app.services.coingecko import CoinGeckoFetcher, build_client
from app.services.query_coordinator import QueryCoordinator
from app.utils.cache import QueryCacheStore
from app.utils.logging_conf import setup_logging


app = FastAPI(title="Coin Markets API")

# Routers
app.include_router(health_router)
app.include_router(market_router)


@app.get("/")
def root() -> dict[str, str]:
    return {"message": "Coins & Markets"}


@app.on_event("startup")
async def on_startup() -> None:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    # one store + coordinator for the whole process lifetime
    client = build_client(settings.COINGECKO_BASE_URL, settings.HTTP_TIMEOUT_SECONDS)
    fetcher = CoinGeckoFetcher(client)
    app.state.http_client = client
    app.state.coordinator = QueryCoordinator(QueryCacheStore(), fetcher.fetch)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    coordinator = getattr(app.state, "coordinator", None)
    if coordinator is not None:
        await coordinator.drain()
    app.state.coordinator = None

    client = getattr(app.state, "http_client", None)
    if client is not None:
        await client.aclose()
    app.state.http_client = None
