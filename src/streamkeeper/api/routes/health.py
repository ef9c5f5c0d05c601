"""Health endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from streamkeeper.api.dependencies import get_streamkeeper_app
from streamkeeper.models.enums import StreamState

if TYPE_CHECKING:
    from streamkeeper.app import Application

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    cameras: int
    streaming: int
    reconnecting: int
    uptime_seconds: float


@router.get("/api/health", response_model=HealthResponse)
async def get_health(app: Application = Depends(get_streamkeeper_app)) -> HealthResponse:
    """Liveness check with a per-state camera count.

    `degraded` means at least one camera that should be live is not streaming.
    """
    records = app.supervisor.get_all_status().values()
    streaming = sum(1 for record in records if record.status == StreamState.STREAMING)
    reconnecting = sum(
        1
        for record in records
        if record.status
        in (StreamState.ERRORED, StreamState.ENDED, StreamState.RECONNECTING)
    )
    return HealthResponse(
        status="degraded" if reconnecting else "ok",
        cameras=len(records),
        streaming=streaming,
        reconnecting=reconnecting,
        uptime_seconds=app.uptime_seconds,
    )
