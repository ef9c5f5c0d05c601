"""JSON error envelope (`detail` + `error_code`) for every non-2xx response."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.requests import Request

from streamkeeper.errors import CameraNotFoundError

logger = logging.getLogger(__name__)


class APIErrorCode(StrEnum):
    APP_NOT_INITIALIZED = "APP_NOT_INITIALIZED"
    CAMERA_NOT_FOUND = "CAMERA_NOT_FOUND"
    REQUEST_VALIDATION_FAILED = "REQUEST_VALIDATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    HTTP_ERROR = "HTTP_ERROR"


class APIError(RuntimeError):
    """Raised by routes and dependencies; rendered as the error envelope."""

    def __init__(
        self,
        detail: str,
        *,
        status_code: int,
        error_code: APIErrorCode,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.error_code = error_code
        self.extra = extra or {}


def _error_response(
    status_code: int,
    detail: str,
    error_code: APIErrorCode,
    *,
    extra: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {"detail": detail, "error_code": error_code.value}
    content.update(extra or {})
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Route every error raised while serving a request through the envelope."""

    @app.exception_handler(APIError)
    async def _api_error(_: Request, exc: APIError) -> JSONResponse:
        return _error_response(exc.status_code, str(exc), exc.error_code, extra=exc.extra)

    @app.exception_handler(CameraNotFoundError)
    async def _camera_not_found(_: Request, exc: CameraNotFoundError) -> JSONResponse:
        return _error_response(
            status.HTTP_404_NOT_FOUND,
            str(exc),
            APIErrorCode.CAMERA_NOT_FOUND,
            extra={"camera_id": exc.camera_id},
        )

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(_: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(
            status.HTTP_422_UNPROCESSABLE_CONTENT,
            "Request validation failed",
            APIErrorCode.REQUEST_VALIDATION_FAILED,
            extra={"validation_errors": exc.errors()},
        )

    # Also catches fastapi.HTTPException (a subclass) and StaticFiles 404s.
    @app.exception_handler(HTTPException)
    async def _http_error(_: Request, exc: HTTPException) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            code = APIErrorCode.NOT_FOUND
        else:
            code = APIErrorCode.HTTP_ERROR
        return _error_response(exc.status_code, str(exc.detail), code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled API exception for path=%s", request.url.path, exc_info=exc)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            APIErrorCode.INTERNAL_SERVER_ERROR,
        )
