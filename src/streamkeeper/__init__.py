"""RTSP to HLS camera stream supervisor."""

__version__ = "0.1.0"

__all__ = ["__version__"]
