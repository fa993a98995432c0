"""Request-scoped context (contextvars).

Holds the request ID of the HTTP request being served so log records
emitted anywhere below the middleware (pipeline, backends) can carry it.
"""

from contextvars import ContextVar, Token

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_request_id(request_id: str | None) -> Token[str | None]:
    """Bind request_id to the current task; returns the token for reset_request_id."""
    return _request_id.set(request_id)


def reset_request_id(token: Token[str | None]) -> None:
    _request_id.reset(token)


def get_request_id() -> str | None:
    return _request_id.get()
