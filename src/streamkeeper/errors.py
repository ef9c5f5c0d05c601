"""Error hierarchy for stream supervision."""

from __future__ import annotations


class StreamError(Exception):
    """Base exception for per-camera stream errors.

    Preserves stack traces via exception chaining.
    """

    def __init__(self, message: str, camera_id: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.camera_id = camera_id
        self.cause = cause
        self.__cause__ = cause


class CameraNotFoundError(StreamError):
    """Camera id is not part of the configured camera set."""

    def __init__(self, camera_id: str) -> None:
        super().__init__(f"Camera not found: {camera_id}", camera_id=camera_id)


class LaunchError(StreamError):
    """Transcoder process could not be spawned."""

    def __init__(self, camera_id: str, cause: Exception) -> None:
        super().__init__(
            f"Failed to launch transcoder for {camera_id}: {cause}",
            camera_id=camera_id,
            cause=cause,
        )
