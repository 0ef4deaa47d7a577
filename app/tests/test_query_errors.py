from __future__ import annotations

import httpx
import pytest
from pydantic import ValidationError

from app.schemas.market import MarketEntry, QueryParams
from app.services.coingecko import CoinGeckoFetcher
from app.services.query_errors import (
    NoResponseError,
    QueryError,
    ServerError,
    UnknownError,
    classify_error,
)


REQUEST = httpx.Request("GET", "https://api.test/api/v3/coins/markets")


def _status_error(status: int, **kwargs) -> httpx.HTTPStatusError:
    response = httpx.Response(status, request=REQUEST, **kwargs)
    return httpx.HTTPStatusError("boom", request=REQUEST, response=response)


def test_server_error_uses_body_message():
    error = classify_error(_status_error(429, json={"message": "rate limited"}))
    assert isinstance(error, ServerError)
    assert error.message == "rate limited"
    assert error.status_code == 429
    assert error.to_dict() == {"kind": "server", "message": "rate limited", "status_code": 429}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"json": {"status": {"error_code": 500}}},
        {"json": ["not", "a", "dict"]},
        {"content": b"<html>bad gateway</html>"},
    ],
)
def test_server_error_without_message_falls_back(kwargs):
    error = classify_error(_status_error(502, **kwargs))
    assert isinstance(error, ServerError)
    assert error.message == "Unknown error"


@pytest.mark.parametrize(
    "exc",
    [
        httpx.ConnectError("refused", request=REQUEST),
        httpx.ReadTimeout("slow", request=REQUEST),
        httpx.RemoteProtocolError("dropped", request=REQUEST),
    ],
)
def test_transport_errors_are_no_response(exc):
    error = classify_error(exc)
    assert isinstance(error, NoResponseError)
    assert error.message == "No response from server"
    assert error.status_code is None


def test_anything_else_is_unknown():
    error = classify_error(RuntimeError("local failure"))
    assert isinstance(error, UnknownError)
    assert error.message == "local failure"


def test_validation_error_is_unknown():
    with pytest.raises(ValidationError) as excinfo:
        MarketEntry.model_validate({"symbol": "btc"})
    error = classify_error(excinfo.value)
    assert isinstance(error, UnknownError)
    assert error.kind == "unknown"


def test_empty_message_uses_type_name():
    assert classify_error(ValueError()).message == "ValueError"
    assert classify_error(TimeoutError()).message == "TimeoutError"


def test_classified_errors_pass_through():
    original = ServerError("nope", status_code=500)
    assert classify_error(original) is original


def test_query_errors_compare_by_value():
    assert NoResponseError() == NoResponseError()
    assert ServerError("a", status_code=500) != ServerError("a", status_code=503)
    assert UnknownError("x") != ServerError("x")
    assert isinstance(NoResponseError(), QueryError)


@pytest.mark.parametrize(
    "exc",
    [
        httpx.DecodingError("bad gzip", request=REQUEST),
        httpx.TooManyRedirects("redirect loop", request=REQUEST),
        httpx.UnsupportedProtocol("missing scheme", request=REQUEST),
        httpx.LocalProtocolError("bad header"),
    ],
)
def test_local_and_response_side_request_errors_are_unknown(exc):
    error = classify_error(exc)
    assert isinstance(error, UnknownError)
    assert error.message == str(exc)


@pytest.mark.asyncio
async def test_base_url_without_scheme_fails_before_sending():
    fetcher = CoinGeckoFetcher(base_url="api.coingecko.com/api/v3")
    with pytest.raises(httpx.UnsupportedProtocol) as excinfo:
        await fetcher.fetch(QueryParams("usd", "market_cap_desc", 1, 10))

    error = classify_error(excinfo.value)
    assert error.kind == "unknown"
    assert error.message != "No response from server"
