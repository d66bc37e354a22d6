"""
app.py

Responsibility: Builds the FastAPI application and owns the lifetime of the
shared resources: the database tables, the httpx.AsyncClient and the
AdapterCache.
Does NOT: define routes, talk to DNS vendors, or hold business logic.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from config import load_settings
from db.database import init_db
from logger import configure_logging
from routes.api_routes import router as api_router
from services.adapter_cache import AdapterCache

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Starts and stops the application-level resources.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to FastAPI while the app is serving.
    """
    settings = load_settings()
    configure_logging(settings.log_level)
    init_db()

    app.state.settings = settings
    app.state.http_client = httpx.AsyncClient(timeout=settings.http_timeout)
    app.state.adapter_cache = AdapterCache(ttl=settings.adapter_cache_ttl)
    logger.info("Multi-vendor DNS API started.")

    try:
        yield
    finally:
        app.state.adapter_cache.clear()
        await app.state.http_client.aclose()
        logger.info("Multi-vendor DNS API stopped.")


app = FastAPI(title="Multi-vendor DNS", lifespan=lifespan)
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
