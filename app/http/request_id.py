"""Request ID middleware.

Echoes the caller's X-Request-Id, or assigns a fresh one when absent. The id
is kept on the ASGI scope for handlers and in a context variable for the
logging filter.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def current_request_id() -> str:
    return _request_id_var.get()


class RequestIdMiddleware:
    def __init__(self, app, header_name: str = "X-Request-Id") -> None:  # type: ignore[no-untyped-def]
        self.app = app
        self.header_name = header_name
        self._header_key = header_name.lower().encode("latin-1")

    async def __call__(self, scope, receive, send):  # type: ignore[no-untyped-def]
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        incoming = None
        for k, v in scope.get("headers") or []:
            if k.lower() == self._header_key and v:
                incoming = v.decode("latin-1")
                break
        request_id = incoming or uuid.uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_wrapper(message):  # type: ignore[no-untyped-def]
            if message.get("type") == "http.response.start":
                headers = list(message.get("headers") or [])
                if not any(k.lower() == self._header_key for k, _ in headers):
                    headers.append((self.header_name.encode("latin-1"), request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        token = _request_id_var.set(request_id)
        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            _request_id_var.reset(token)


__all__ = ["RequestIdMiddleware", "current_request_id"]
