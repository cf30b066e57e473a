from __future__ import annotations

import uuid
from http import HTTPStatus
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse

from open311_api.models.schemas import ErrorResponse
from open311_api.observability.logging import LogFacade


def _remote_addr(scope: dict[str, Any]) -> str:
    client = scope.get("client")
    if not client:
        return "unknown"
    host, port = client
    return f"{host}:{port}"


class RequestContextMiddleware:
    """Adds request_id context, remote address binding and access logs."""

    def __init__(self, app: Callable[..., Any], log: LogFacade) -> None:
        self.app = app
        self.log = log

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get("x-request-id") or str(uuid.uuid4())
        path = scope.get("path")
        method = scope.get("method")
        remote_addr = _remote_addr(scope)

        structlog.contextvars.bind_contextvars(request_id=request_id)
        self.log.info("Received %s %s from %s", method, path, remote_addr)

        start = perf_counter()
        status_code: int = 500
        response_started = False

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code, response_started

            if message.get("type") == "http.response.start":
                response_started = True
                status_code = int(message.get("status", 500))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                raise
            self.log.error("Unhandled error on %s %s from %s: %s", method, path, remote_addr, exc, exc_info=exc)
            code = int(HTTPStatus.INTERNAL_SERVER_ERROR)
            body = ErrorResponse(error=HTTPStatus(code).phrase, code=str(code)).model_dump()
            await JSONResponse(status_code=code, content=body)(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (perf_counter() - start) * 1000.0
            self.log.info("Completed %s %s with %d in %.2fms", method, path, status_code, elapsed_ms)
            structlog.contextvars.clear_contextvars()
