"""API route registration."""

from __future__ import annotations

from fastapi import FastAPI

from streamkeeper.api.routes import cameras, health, streams


def register_routes(app: FastAPI) -> None:
    """Register all API routers."""
    app.include_router(health.router)
    app.include_router(cameras.router)
    app.include_router(streams.router)
