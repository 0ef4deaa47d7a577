"""Error taxonomy for market queries and the classifier the coordinator uses."""

from __future__ import annotations

from typing import Any

import httpx


NO_RESPONSE_MESSAGE = "No response from server"
UNKNOWN_SERVER_MESSAGE = "Unknown error"


class QueryError(Exception):
    kind = "unknown"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.status_code is not None:
            payload["status_code"] = self.status_code
        return payload

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryError):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.message == other.message
            and self.status_code == other.status_code
        )

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.message, self.status_code))


class ServerError(QueryError):
    """The remote answered with a failure status."""

    kind = "server"


class NoResponseError(QueryError):
    """The request went out but nothing came back."""

    kind = "no_response"

    def __init__(self, message: str = NO_RESPONSE_MESSAGE) -> None:
        super().__init__(message)


class UnknownError(QueryError):
    kind = "unknown"


def _server_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return UNKNOWN_SERVER_MESSAGE
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
    return UNKNOWN_SERVER_MESSAGE


def classify_error(exc: BaseException) -> QueryError:
    if isinstance(exc, QueryError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        return ServerError(_server_message(exc.response), status_code=exc.response.status_code)

    # the request went out and the connection failed before a response arrived
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return NoResponseError()

    message = str(exc) or type(exc).__name__
    return UnknownError(message)
