"""Request ID middleware.

Every HTTP request gets an ID: the client's X-Request-ID when it is short and
limited to [A-Za-z0-9_-], otherwise a fresh UUID4 hex. The ID is put on
scope state, bound to the request context for log records, and echoed on
the response. Raw ASGI so upload bodies are never buffered.
"""

import re
import uuid
from typing import Any, Awaitable, Callable

from framestore.shared.context import reset_request_id, set_request_id

Scope = dict[str, Any]
Message = dict[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

_SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9_-]{1,64}")


def client_request_id(scope: Scope, header_name: str) -> str | None:
    """Client-supplied request ID if it is safe to log and echo; None otherwise."""
    wanted = header_name.lower().encode("latin-1")
    for name, value in scope.get("headers", []):
        if name.lower() == wanted:
            candidate = value.decode("latin-1").strip()
            return candidate if _SAFE_REQUEST_ID.fullmatch(candidate) else None
    return None


class RequestIDMiddleware:
    """Assign, propagate and echo a per-request ID."""

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID") -> None:
        self.app = app
        self.header_name = header_name
        self._raw_header = header_name.lower().encode("latin-1")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = client_request_id(scope, self.header_name) or uuid.uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [
                    *message.get("headers", []),
                    (self._raw_header, request_id.encode("latin-1")),
                ]
            await send(message)

        token = set_request_id(request_id)
        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            reset_request_id(token)
