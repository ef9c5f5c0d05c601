"""Stream control, status and playlist endpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from streamkeeper.api.dependencies import get_streamkeeper_app
from streamkeeper.models.status import StatusRecord
from streamkeeper.streaming.manifest import MEDIA_TYPE, placeholder_playlist

if TYPE_CHECKING:
    from streamkeeper.app import Application

logger = logging.getLogger(__name__)
router = APIRouter(tags=["streams"])

_NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store, must-revalidate"}


class StreamStatusResponse(BaseModel):
    camera_id: str
    camera_name: str
    is_streaming: bool
    reconnect_attempts: int
    status: str
    message: str

    @classmethod
    def from_record(cls, record: StatusRecord) -> StreamStatusResponse:
        return cls(
            camera_id=record.camera_id,
            camera_name=record.camera_name,
            is_streaming=record.is_streaming,
            reconnect_attempts=record.reconnect_attempts,
            status=str(record.status),
            message=record.message,
        )


class StreamActionRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    camera_id: str | None = None


class StreamActionResponse(BaseModel):
    message: str
    camera_id: str
    status: StreamStatusResponse


class BulkActionResponse(BaseModel):
    message: str
    cameras: dict[str, StreamStatusResponse]


@router.get(
    "/api/stream/status",
    response_model=StreamStatusResponse | dict[str, StreamStatusResponse],
)
async def get_stream_status(
    camera_id: str | None = Query(default=None),
    camera_id_legacy: str | None = Query(default=None, alias="cameraId", include_in_schema=False),
    app: Application = Depends(get_streamkeeper_app),
) -> StreamStatusResponse | dict[str, StreamStatusResponse]:
    """Status for one camera, or a map of every camera's status."""
    requested = camera_id or camera_id_legacy
    if requested:
        return StreamStatusResponse.from_record(app.supervisor.get_status(requested))
    return {
        key: StreamStatusResponse.from_record(record)
        for key, record in app.supervisor.get_all_status().items()
    }


@router.post("/api/stream/start", response_model=StreamActionResponse)
async def start_stream(
    payload: StreamActionRequest | None = None,
    app: Application = Depends(get_streamkeeper_app),
) -> StreamActionResponse:
    """Start one camera (the first configured camera when none is given)."""
    camera_id = (payload.camera_id if payload else None) or app.supervisor.default_camera_id
    record = await app.supervisor.start(camera_id)
    return StreamActionResponse(
        message=f"Stream started for camera {camera_id}",
        camera_id=camera_id,
        status=StreamStatusResponse.from_record(record),
    )


@router.post("/api/stream/stop", response_model=StreamActionResponse)
async def stop_stream(
    payload: StreamActionRequest | None = None,
    app: Application = Depends(get_streamkeeper_app),
) -> StreamActionResponse:
    """Stop one camera (the first configured camera when none is given)."""
    camera_id = (payload.camera_id if payload else None) or app.supervisor.default_camera_id
    record = await app.supervisor.stop(camera_id)
    return StreamActionResponse(
        message=f"Stream stopped for camera {camera_id}",
        camera_id=camera_id,
        status=StreamStatusResponse.from_record(record),
    )


@router.post("/api/stream/start-all", response_model=BulkActionResponse)
async def start_all_streams(app: Application = Depends(get_streamkeeper_app)) -> BulkActionResponse:
    records = await app.supervisor.start_all()
    return BulkActionResponse(
        message="Start requested for all cameras",
        cameras={key: StreamStatusResponse.from_record(r) for key, r in records.items()},
    )


@router.post("/api/stream/stop-all", response_model=BulkActionResponse)
async def stop_all_streams(app: Application = Depends(get_streamkeeper_app)) -> BulkActionResponse:
    records = await app.supervisor.stop_all()
    return BulkActionResponse(
        message="Stopped all cameras",
        cameras={key: StreamStatusResponse.from_record(r) for key, r in records.items()},
    )


@router.get("/api/stream/playlist.m3u8", response_class=Response)
async def get_default_playlist(app: Application = Depends(get_streamkeeper_app)) -> Response:
    """Legacy single-camera playlist; serves the first configured camera."""
    return _playlist_response(app, app.supervisor.default_camera_id)


@router.get("/api/stream/{camera_id}/playlist.m3u8", response_class=Response)
async def get_camera_playlist(
    camera_id: str,
    app: Application = Depends(get_streamkeeper_app),
) -> Response:
    """Rewritten HLS playlist; a valid empty playlist until segments exist."""
    return _playlist_response(app, camera_id)


def _playlist_response(app: Application, camera_id: str) -> Response:
    try:
        body = app.manifests.render(camera_id)
    except Exception as exc:
        logger.error("Playlist rendering failed for %s: %s", camera_id, exc, exc_info=exc)
        body = placeholder_playlist(app.config.encoding.hls_time)
    return Response(content=body, media_type=MEDIA_TYPE, headers=dict(_NO_CACHE_HEADERS))
