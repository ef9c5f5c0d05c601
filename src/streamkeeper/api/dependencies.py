"""FastAPI dependency helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from fastapi import Request, status

from streamkeeper.api.errors import APIError, APIErrorCode

if TYPE_CHECKING:
    from streamkeeper.app import Application


async def get_streamkeeper_app(request: Request) -> Application:
    """Get the streamkeeper Application instance from request state."""
    app = cast("Application | None", getattr(request.app.state, "streamkeeper", None))
    if app is None:
        raise APIError(
            "Application not initialized",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code=APIErrorCode.APP_NOT_INITIALIZED,
        )
    return app
