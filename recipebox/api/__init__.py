"""API assembly helpers."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..services.callbacks import UnknownProvider
from .routers import ALL_ROUTERS


async def _unknown_provider(request: Request, exc: UnknownProvider) -> JSONResponse:
    return JSONResponse({"detail": f"Unknown provider: {exc}"}, status_code=404)


def register_routes(app: FastAPI) -> None:
    """Attach all application routers and their error handlers to the app."""

    for router in ALL_ROUTERS:
        app.include_router(router)
    app.add_exception_handler(UnknownProvider, _unknown_provider)


__all__ = ["register_routes"]
