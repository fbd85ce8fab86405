"""ASGI middleware: request-scoped logging context and CORS preflights."""

from __future__ import annotations

import uuid

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import bind_contextvars, clear_contextvars, get_logger

logger = get_logger(__name__)


class RequestContextMiddleware:
    """Binds a request id to every log line of the request and echoes it back.

    An incoming ``X-Request-Id`` is reused so upstream proxies can correlate.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = ""
        for name, value in scope.get("headers", []):
            if name == b"x-request-id":
                request_id = value.decode("latin-1")[:64]
                break
        if not request_id:
            request_id = uuid.uuid4().hex

        clear_contextvars()
        bind_contextvars(
            request_id=request_id,
            method=scope.get("method"),
            path=scope.get("path"),
        )

        async def send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            clear_contextvars()


class PreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose preflight answer is always 200 with an empty body.

    Allowed origins still get their ``Access-Control-Allow-*`` headers. Other
    origins get none, so browsers refuse the follow-up request themselves.
    """

    def preflight_response(self, request_headers: Headers) -> Response:
        checked = super().preflight_response(request_headers)
        headers = {
            name: value
            for name, value in checked.headers.items()
            if name not in ("content-length", "content-type")
        }
        if checked.status_code != 200:
            logger.info(
                "cors.preflight_rejected",
                origin=request_headers.get("origin"),
                reason=checked.body.decode("utf-8", "replace"),
            )
        return Response(status_code=200, headers=headers)
