from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Sequence

from app.config.settings import get_settings
from app.schemas.market import CURRENCY_OPTIONS, QueryParams, SortOrder
from app.services.query_coordinator import QueryCoordinator, QueryState
from app.utils.query_keys import FetchKey, build_fetch_key

logger = logging.getLogger("coin_markets.page")


StateListener = Callable[[QueryState], None]


def check_currency(currency: str) -> str:
    if currency not in CURRENCY_OPTIONS:
        raise ValueError(f"Unsupported currency '{currency}'")
    return currency


def check_sort_order(sort_order: str) -> str:
    try:
        return SortOrder(sort_order).value
    except ValueError as exc:
        raise ValueError(f"Unsupported sort order '{sort_order}'") from exc


def check_page(page: int) -> int:
    if page < 1:
        raise ValueError("page must be >= 1")
    return page


def check_page_size(page_size: int, options: Sequence[int]) -> int:
    if page_size not in options:
        raise ValueError(f"page_size must be one of {list(options)}")
    return page_size


def market_options(page_size_options: Sequence[int], total_items: int) -> dict[str, object]:
    """Choices for the filter and pagination controls."""
    return {
        "currencies": [{"value": k, "label": v} for k, v in CURRENCY_OPTIONS.items()],
        "sort_orders": [{"value": o.value, "label": o.label} for o in SortOrder],
        "page_sizes": list(page_size_options),
        "total_items": total_items,
    }


class MarketCoinsPage:
    """
    Filter and pagination state of the markets table.

    Every input change re-runs the query with the full param set. The page
    listens to the coordinator and keeps only the state for the fetch key it
    currently shows; results for keys it has moved away from are ignored.
    Unset defaults come from get_settings().
    """

    def __init__(
        self,
        coordinator: QueryCoordinator,
        *,
        currency: Optional[str] = None,
        sort_order: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        page_size_options: Optional[Iterable[int]] = None,
        total_items: Optional[int] = None,
        on_change: Optional[StateListener] = None,
    ) -> None:
        settings = get_settings()
        self._coordinator = coordinator
        self.page_size_options = tuple(
            page_size_options if page_size_options is not None else settings.PAGE_SIZE_OPTIONS
        )
        self.total_items = total_items if total_items is not None else settings.MARKET_TOTAL_ITEMS
        self._on_change = on_change

        self._params = QueryParams(
            currency=check_currency(currency if currency is not None else settings.DEFAULT_CURRENCY),
            sort_order=check_sort_order(sort_order if sort_order is not None else settings.DEFAULT_ORDER),
            page=check_page(page),
            page_size=check_page_size(
                page_size if page_size is not None else settings.DEFAULT_PAGE_SIZE,
                self.page_size_options,
            ),
        )
        self._state = coordinator.state(self._params)
        self._unsubscribe = coordinator.subscribe_all(self._on_coordinator_update)

    # ---------- read side ----------

    @property
    def params(self) -> QueryParams:
        return self._params

    @property
    def fetch_key(self) -> FetchKey:
        return build_fetch_key(self._params)

    @property
    def state(self) -> QueryState:
        return self._state

    @property
    def loading(self) -> bool:
        """Spinner flag for the table."""
        return self._state.is_loading or self._state.is_fetching

    def showing_range(self) -> tuple[int, int]:
        first = (self._params.page - 1) * self._params.page_size + 1
        last = min(self._params.page * self._params.page_size, self.total_items)
        return first, last

    def showing_label(self) -> str:
        first, last = self.showing_range()
        return f"Showing {first}-{last} of {self.total_items} items"

    def options(self) -> dict[str, object]:
        return market_options(self.page_size_options, self.total_items)

    # ---------- input events ----------

    def start(self) -> QueryState:
        return self._run()

    def change_filters(self, currency: Optional[str] = None, sort_order: Optional[str] = None) -> QueryState:
        if currency is not None:
            check_currency(currency)
        if sort_order is not None:
            sort_order = check_sort_order(sort_order)

        self._params = QueryParams(
            currency=currency if currency is not None else self._params.currency,
            sort_order=sort_order if sort_order is not None else self._params.sort_order,
            page=self._params.page,
            page_size=self._params.page_size,
        )
        return self._run()

    def change_page(self, page: int, page_size: Optional[int] = None) -> QueryState:
        check_page(page)
        if page_size:
            check_page_size(page_size, self.page_size_options)

        self._params = QueryParams(
            currency=self._params.currency,
            sort_order=self._params.sort_order,
            page=page,
            page_size=page_size or self._params.page_size,
        )
        return self._run()

    def refresh(self) -> QueryState:
        return self._run()

    def close(self) -> None:
        self._unsubscribe()

    # ---------- internals ----------

    def _run(self) -> QueryState:
        logger.debug("page query | params=%s", self._params)
        self._set_state(self._coordinator.run(self._params))
        return self._state

    def _on_coordinator_update(self, fetch_key: FetchKey, state: QueryState) -> None:
        if fetch_key != self.fetch_key:
            return
        self._set_state(state)

    def _set_state(self, state: QueryState) -> None:
        if state is self._state:
            return
        self._state = state
        if self._on_change is not None:
            self._on_change(state)
