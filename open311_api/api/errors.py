from __future__ import annotations

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from open311_api.api.dependencies import get_log, remote_addr
from open311_api.models.schemas import ErrorResponse


class ApiError(Exception):
    """Terminal error for one request, rendered as the JSON error envelope."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def error_body(status_code: int, message: str) -> dict[str, str]:
    return ErrorResponse(error=message, code=str(status_code)).model_dump()


def respond_with_error(
    request: Request,
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    log = get_log(request)
    emit = log.error if status_code >= 500 else log.warning
    emit(
        "Responding with error to %s: code %d, message: %s",
        remote_addr(request),
        status_code,
        message,
    )
    return JSONResponse(status_code=status_code, content=error_body(status_code, message), headers=headers)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return respond_with_error(request, exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else HTTPStatus(exc.status_code).phrase
    return respond_with_error(request, exc.status_code, message, headers=exc.headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
