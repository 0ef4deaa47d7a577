from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.config.settings import get_settings
from app.schemas.market import QueryParams, SortOrder
from app.services.market_page import (
    check_currency,
    check_page,
    check_page_size,
    check_sort_order,
    market_options,
)
from app.services.query_coordinator import QueryCoordinator


router = APIRouter(prefix="/market", tags=["market"])


def get_coordinator(request: Request) -> QueryCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Query coordinator not ready")
    return coordinator


@router.get("/coins")
async def get_market_coins(
    currency: Optional[str] = Query(None, description="Quote currency, e.g. usd (default DEFAULT_CURRENCY)"),
    order: Optional[SortOrder] = Query(None, description="Sort order (default DEFAULT_ORDER)"),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, description="Rows per page (default DEFAULT_PAGE_SIZE)"),
    wait: bool = Query(False, description="Block until the fetch settles"),
    coordinator: QueryCoordinator = Depends(get_coordinator),
):
    """
    Run the markets query and return its state.
    Example: /market/coins?currency=usd&order=market_cap_desc&page=2&page_size=20
    """
    settings = get_settings()
    try:
        params = QueryParams(
            currency=check_currency(currency if currency is not None else settings.DEFAULT_CURRENCY),
            sort_order=check_sort_order(order if order is not None else settings.DEFAULT_ORDER),
            page=check_page(page),
            page_size=check_page_size(
                page_size if page_size is not None else settings.DEFAULT_PAGE_SIZE,
                settings.PAGE_SIZE_OPTIONS,
            ),
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=422,
            detail={"error": str(exc), "options": market_options(settings.PAGE_SIZE_OPTIONS, settings.MARKET_TOTAL_ITEMS)},
        ) from exc

    state = coordinator.run(params)
    if wait:
        state = await coordinator.settle(params)
    return state.to_dict()


@router.get("/options")
async def get_market_options():
    settings = get_settings()
    return market_options(settings.PAGE_SIZE_OPTIONS, settings.MARKET_TOTAL_ITEMS)
