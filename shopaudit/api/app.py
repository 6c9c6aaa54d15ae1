"""FastAPI application factory.

Lifespan
--------
On startup the app creates the process-wide :class:`ModelRegistry` (shared
across requests via ``request.app.state.models``) and one pooled HTTP client
for crawling (``request.app.state.http``).  On shutdown the client is closed.

Routers
-------
    /analyze      — full analysis, streamed (SSE) or as a single JSON payload
    /links        — classified homepage links
    /collections  — collection pages with their product links
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shopaudit.config import settings
from shopaudit.llm.fallback import ModelRegistry
from shopaudit.scraper.fetcher import build_client

from shopaudit.api.routers import analyze as analyze_router
from shopaudit.api.routers import discovery as discovery_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create shared state on startup and release it on shutdown."""
    app.state.models = ModelRegistry.from_settings()
    app.state.http = build_client()
    try:
        yield
    finally:
        await app.state.http.aclose()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="ShopAudit API",
        description=(
            "Crawls an e-commerce homepage, selects representative product pages "
            "and scores their content for brand alignment, conversion effectiveness "
            "and SEO/AI discoverability.  Progress is streamed as Server-Sent Events."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    app.include_router(analyze_router.router, prefix="/analyze", tags=["analyze"])
    app.include_router(discovery_router.router, tags=["discovery"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn shopaudit.api.app:app --reload
app = create_app()
