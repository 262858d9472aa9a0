"""
FastAPI application entrypoint for the QuickBooks connection service.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from qbo_connect import __version__
from qbo_connect.api.routes import router
from qbo_connect.core.config import get_settings
from qbo_connect.core.logging import configure_logging
from qbo_connect.dependencies import get_token_store


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # A failed connection is logged by the store; the server still starts.
    store = get_token_store()
    await asyncio.to_thread(store.connect)
    yield
    store.dispose()


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="QBO Connect",
        version=__version__,
        description="Connects a QuickBooks Online company and stores its OAuth tokens.",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured port."""
    import uvicorn

    uvicorn.run("qbo_connect.main:app", host="0.0.0.0", port=get_settings().port)


__all__ = ["app", "create_app", "run"]


if __name__ == "__main__":  # pragma: no cover - script entry point
    run()
