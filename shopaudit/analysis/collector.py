"""Fetch full content for the selected product pages.

Failures are logged and dropped; the collector only ever returns the pages it
managed to fetch.  An empty result is for the caller to treat as terminal.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

import httpx

from shopaudit.analysis.models import SelectedProduct
from shopaudit.config import settings
from shopaudit.scraper.extractor import extract_product_image, extract_text
from shopaudit.scraper.fetcher import FetchError, fetch_html, fetch_many
from shopaudit.scraper.models import PageContent

PARALLEL = "parallel"
SERIAL = "serial"


def _to_page(url: str, html: str, content_mode: str) -> PageContent:
    content = extract_text(html, url) if content_mode == "text" else html
    return PageContent(
        url=url,
        page_type="product",
        content=content,
        image=extract_product_image(html, url),
    )


async def _collect_serial(
    urls: Sequence[str], client: httpx.AsyncClient, delay: float
) -> List[Optional[str]]:
    bodies: List[Optional[str]] = []
    for index, url in enumerate(urls):
        if index:
            await asyncio.sleep(delay)
        try:
            bodies.append(await fetch_html(url, client=client))
        except FetchError as exc:
            print(f"[COLLECTING] ✗ {url}: {exc.reason}")
            bodies.append(None)
    return bodies


async def collect_pages(
    products: Sequence[SelectedProduct],
    *,
    client: httpx.AsyncClient,
    mode: Optional[str] = None,
    delay: Optional[float] = None,
    content_mode: Optional[str] = None,
) -> List[PageContent]:
    """Fetch every selected product page, tolerating individual failures.

    Args:
        products: Pages to fetch, in selection order.
        client: Shared HTTP client.
        mode: ``"parallel"`` (bounded fan-out) or ``"serial"`` (one request
            at a time with *delay* seconds between them).
        delay: Pause between serial requests (``settings.rate_limit_delay``).
        content_mode: ``"html"`` keeps raw markup, ``"text"`` extracts
            readable text.

    Returns:
        The successfully fetched pages, in selection order.
    """
    mode = mode or settings.collector_mode
    content_mode = content_mode or settings.content_mode
    urls = [p.url for p in products]
    print(f"[COLLECTING] Fetching {len(urls)} product page(s) ({mode}).")

    if mode == SERIAL:
        bodies = await _collect_serial(
            urls, client, settings.rate_limit_delay if delay is None else delay
        )
    else:
        results = await fetch_many(urls, client=client)
        bodies = [None if isinstance(r, FetchError) else r for r in results]

    pages = [
        _to_page(url, body, content_mode) for url, body in zip(urls, bodies) if body is not None
    ]
    print(f"[COLLECTING] {len(pages)}/{len(urls)} page(s) collected.")
    return pages
