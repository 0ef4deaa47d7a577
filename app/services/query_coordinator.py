"""
Fetch coordination for the markets table.

One coordinator per process. It seeds state from the cache store, launches at
most one fetch per fetch key at a time, writes successful results back under
the display key and tells observers about every state transition.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence

from app.schemas.market import MarketEntry, QueryParams
from app.services.query_errors import QueryError, classify_error
from app.utils.cache import QueryCacheStore
from app.utils.query_keys import FetchKey, build_fetch_key
from app.utils.time import elapsed_ms

logger = logging.getLogger("coin_markets.coordinator")


Fetcher = Callable[[QueryParams], Awaitable[Sequence[MarketEntry]]]
ErrorReporter = Callable[[QueryError], None]


@dataclass(frozen=True)
class QueryState:
    data: list[MarketEntry] = field(default_factory=list)
    is_loading: bool = False
    is_fetching: bool = False
    error: QueryError | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": [entry.to_payload() for entry in self.data],
            "isLoading": self.is_loading,
            "isFetching": self.is_fetching,
            "error": self.error.to_dict() if self.error is not None else None,
        }


Observer = Callable[[FetchKey, QueryState], None]


def log_error_reporter(error: QueryError) -> None:
    logger.error("market query failed | kind=%s | %s", error.kind, error.message)


class QueryCoordinator:
    def __init__(
        self,
        store: QueryCacheStore,
        fetcher: Fetcher,
        *,
        on_error: ErrorReporter | None = None,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._on_error = on_error or log_error_reporter
        self._in_flight: dict[FetchKey, asyncio.Task[QueryState]] = {}
        self._states: dict[FetchKey, QueryState] = {}
        self._observers: dict[FetchKey, list[Observer]] = {}
        self._global_observers: list[Observer] = []

    @property
    def store(self) -> QueryCacheStore:
        return self._store

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def is_fetching(self, params: QueryParams) -> bool:
        return build_fetch_key(params) in self._in_flight

    def state(self, params: QueryParams) -> QueryState:
        """
        Current state for params without starting a fetch.

        Keys that are neither in flight nor subscribed to are rebuilt from
        the store, so an unwatched key's last error is not kept.
        """
        fetch_key = build_fetch_key(params)
        known = self._states.get(fetch_key)
        if known is not None:
            return known
        return QueryState(data=self._store.get(fetch_key.display) or [])

    def run(self, params: QueryParams) -> QueryState:
        """
        Start (or join) the fetch for params and return the immediate state.

        Must be called from inside the running event loop. Nothing awaits
        here: the returned state is built from the cache before any I/O.
        """
        fetch_key = build_fetch_key(params)

        if fetch_key in self._in_flight:
            logger.debug("fetch joined | key=%s", fetch_key.digest())
            return self._states[fetch_key]

        cached = self._store.get(fetch_key.display)
        state = QueryState(
            data=cached if cached is not None else [],
            is_loading=cached is None,
            is_fetching=True,
        )
        loop = asyncio.get_running_loop()
        self._states[fetch_key] = state
        self._in_flight[fetch_key] = loop.create_task(
            self._fetch(fetch_key, params),
            name=f"market-query-{fetch_key.digest()}",
        )
        self._notify(fetch_key, state)
        return state

    async def settle(self, params: QueryParams) -> QueryState:
        """Wait for the in-flight fetch for params, if any, and return its state."""
        task = self._in_flight.get(build_fetch_key(params))
        if task is not None:
            # a caller giving up must not cancel a fetch other callers share
            return await asyncio.shield(task)
        return self.state(params)

    async def drain(self) -> None:
        """Let every outstanding fetch finish. Used on shutdown."""
        tasks = list(self._in_flight.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def subscribe(self, fetch_key: FetchKey, observer: Observer) -> Callable[[], None]:
        self._observers.setdefault(fetch_key, []).append(observer)

        def _unsubscribe() -> None:
            observers = self._observers.get(fetch_key)
            if observers and observer in observers:
                observers.remove(observer)
                if not observers:
                    del self._observers[fetch_key]
                    if fetch_key not in self._in_flight:
                        self._states.pop(fetch_key, None)

        return _unsubscribe

    def subscribe_all(self, observer: Observer) -> Callable[[], None]:
        self._global_observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._global_observers:
                self._global_observers.remove(observer)

        return _unsubscribe

    async def _fetch(self, fetch_key: FetchKey, params: QueryParams) -> QueryState:
        started = time.perf_counter()
        logger.debug("fetch start | key=%s | params=%s", fetch_key.digest(), params)
        try:
            try:
                result = list(await self._fetcher(params))
            except Exception as exc:
                error = classify_error(exc)
                logger.warning(
                    "fetch failed | key=%s | kind=%s | %dms",
                    fetch_key.digest(),
                    error.kind,
                    elapsed_ms(started),
                )
                return self._fail(fetch_key, error)

            self._store.set(fetch_key.display, result)
            state = QueryState(data=result)
            logger.info(
                "fetch done | key=%s | rows=%d | %dms",
                fetch_key.digest(),
                len(result),
                elapsed_ms(started),
            )
            self._settle(fetch_key, state)
            return state
        finally:
            if self._in_flight.get(fetch_key) is asyncio.current_task():
                del self._in_flight[fetch_key]
                # cancelled before settling
                if fetch_key not in self._observers:
                    self._states.pop(fetch_key, None)

    def _fail(self, fetch_key: FetchKey, error: QueryError) -> QueryState:
        cached = self._store.get(fetch_key.display)
        if cached is None:
            previous = self._states.get(fetch_key)
            cached = previous.data if previous is not None else []
        state = QueryState(data=cached, error=error)
        self._settle(fetch_key, state)

        # once per failed fetch, however many observers are attached
        try:
            self._on_error(error)
        except Exception:
            logger.exception("error reporter raised | key=%s", fetch_key.digest())
        return state

    def _settle(self, fetch_key: FetchKey, state: QueryState) -> None:
        # clear before notifying so an observer can start a fresh refetch
        if self._in_flight.get(fetch_key) is asyncio.current_task():
            del self._in_flight[fetch_key]
        # settled states are only kept for keys someone is watching
        if fetch_key in self._observers:
            self._states[fetch_key] = state
        else:
            self._states.pop(fetch_key, None)
        self._notify(fetch_key, state)

    def _notify(self, fetch_key: FetchKey, state: QueryState) -> None:
        observers = list(self._observers.get(fetch_key, ())) + list(self._global_observers)
        for observer in observers:
            try:
                observer(fetch_key, state)
            except Exception:
                logger.exception("observer raised | key=%s", fetch_key.digest())
