"""Discovery endpoints — inspect what the crawler sees without running analysis.

Routes
------
POST /links         Body: {"url": "..."}   → classified homepage links + counts
POST /collections   Body: {"url": "..."}   → collection pages with up to 20 products each
"""

from __future__ import annotations

from typing import Any

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from shopaudit.analysis.selector import discover_candidates
from shopaudit.api.deps import get_http, normalise_url
from shopaudit.config import settings
from shopaudit.scraper.classifier import summarize_links
from shopaudit.scraper.extractor import extract_links
from shopaudit.scraper.fetcher import FetchError, fetch_html

router = APIRouter()


class SiteRequest(BaseModel):
    url: str


@router.post("/links")
async def homepage_links(
    body: SiteRequest,
    client: httpx.AsyncClient = Depends(get_http),
) -> dict[str, Any]:
    """Return every labelled homepage link, bucketed and sorted."""
    url = normalise_url(body.url)
    try:
        html = await fetch_html(url, client=client)
    except FetchError as exc:
        raise HTTPException(status_code=502, detail=exc.reason) from exc

    return summarize_links(extract_links(html, url, require_text=True))


@router.post("/collections")
async def collections_with_products(
    body: SiteRequest,
    client: httpx.AsyncClient = Depends(get_http),
) -> dict[str, Any]:
    """Return the first collection pages and the product links found on each."""
    url = normalise_url(body.url)
    try:
        discovery = await discover_candidates(
            url,
            client=client,
            per_collection_limit=settings.collection_product_limit,
            require_text=True,
        )
    except FetchError as exc:
        raise HTTPException(status_code=502, detail=exc.reason) from exc

    return {"collections": [g.to_dict() for g in discovery.collections]}
