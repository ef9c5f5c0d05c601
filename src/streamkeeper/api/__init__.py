"""HTTP API for streamkeeper."""

from streamkeeper.api.server import APIServer, create_app

__all__ = ["APIServer", "create_app"]
