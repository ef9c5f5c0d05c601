"""Camera listing endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from streamkeeper.api.dependencies import get_streamkeeper_app

if TYPE_CHECKING:
    from streamkeeper.app import Application

router = APIRouter(tags=["cameras"])


class CameraResponse(BaseModel):
    id: str
    name: str


@router.get("/api/cameras", response_model=list[CameraResponse])
async def list_cameras(
    app: Application = Depends(get_streamkeeper_app),
) -> list[CameraResponse]:
    """List configured cameras (never includes source URLs)."""
    return [CameraResponse(id=camera.id, name=camera.name) for camera in app.supervisor.cameras()]
