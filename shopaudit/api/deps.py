"""Request-scoped helpers shared by the routers."""

from __future__ import annotations

import httpx
from fastapi import HTTPException, Request

from shopaudit.llm.fallback import ModelRegistry


def normalise_url(raw: str) -> str:
    """Trim *raw* and default the scheme to ``https``.

    Raises:
        HTTPException: 422 if nothing usable is left.
    """
    url = raw.strip()
    if not url:
        raise HTTPException(status_code=422, detail="A website URL is required.")
    if not url.lower().startswith(("http://", "https://")):
        url = f"https://{url}"
    return url


def get_registry(request: Request) -> ModelRegistry:
    return request.app.state.models


def get_http(request: Request) -> httpx.AsyncClient:
    return request.app.state.http
