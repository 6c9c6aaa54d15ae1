"""Candidate discovery: homepage → collection pages → product links.

Only URLs observed as anchors on fetched pages ever become candidates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from shopaudit.config import settings
from shopaudit.scraper.classifier import PRODUCT, classify_link, is_collection_url
from shopaudit.scraper.extractor import extract_links
from shopaudit.scraper.fetcher import FetchError, fetch_html, fetch_many
from shopaudit.scraper.models import CollectionGroup, Link


@dataclass
class Discovery:
    """Everything the crawl found, in discovery order."""

    homepage_url: str
    homepage_html: str
    collections: List[CollectionGroup] = field(default_factory=list)
    candidates: List[Link] = field(default_factory=list)
    # Collection pages that could not be fetched.
    failures: List[FetchError] = field(default_factory=list)


def pick_collections(links: List[Link], limit: int) -> List[Link]:
    """Return the first *limit* distinct collection links, in page order."""
    picked: List[Link] = []
    seen: set[str] = set()
    for link in links:
        if len(picked) >= limit:
            break
        if is_collection_url(link.url) and link.url not in seen:
            picked.append(link)
            seen.add(link.url)
    return picked


def product_links(html: str, page_url: str, *, require_text: bool = False, limit: Optional[int] = None) -> List[Link]:
    """Return the product-classified links on a collection page, deduplicated."""
    products: List[Link] = []
    for link in extract_links(html, page_url, require_text=require_text):
        if classify_link(link.url, link.text, keywords=False) != PRODUCT:
            continue
        products.append(link)
        if limit is not None and len(products) >= limit:
            break
    return products


def flatten_candidates(groups: List[CollectionGroup]) -> List[Link]:
    """Flatten group products in group order, dropping URLs already seen."""
    seen: set[str] = set()
    flat: List[Link] = []
    for group in groups:
        for link in group.products:
            if link.url not in seen:
                seen.add(link.url)
                flat.append(link)
    return flat


async def discover_candidates(
    homepage_url: str,
    *,
    client: httpx.AsyncClient,
    homepage_html: Optional[str] = None,
    max_collections: Optional[int] = None,
    per_collection_limit: Optional[int] = None,
    require_text: bool = False,
) -> Discovery:
    """Crawl *homepage_url* and its first collection pages for product links.

    Args:
        homepage_url: Site entry point.
        client: Shared HTTP client.
        homepage_html: Already-fetched homepage markup, if the caller has it.
        max_collections: Number of collection pages to follow
            (``settings.max_collections`` by default).
        per_collection_limit: Cap on products kept per collection.
        require_text: Ignore anchors without a label.

    Raises:
        FetchError: If the homepage itself cannot be fetched.  Collection
            pages that fail are logged, skipped and kept on
            :attr:`Discovery.failures`.
    """
    if homepage_html is None:
        homepage_html = await fetch_html(homepage_url, client=client)

    limit = max_collections if max_collections is not None else settings.max_collections
    links = extract_links(homepage_html, homepage_url, require_text=require_text)
    collections = pick_collections(links, limit)
    print(f"[DISCOVERY] {len(links)} link(s) on homepage, following {len(collections)} collection(s).")

    pages = await fetch_many([c.url for c in collections], client=client)

    groups: List[CollectionGroup] = []
    failures: List[FetchError] = []
    for collection, page in zip(collections, pages):
        if isinstance(page, FetchError):
            print(f"[DISCOVERY] ✗ Skipping collection {collection.url}: {page.reason}")
            failures.append(page)
            continue
        products = product_links(
            page, collection.url, require_text=require_text, limit=per_collection_limit
        )
        print(f"[DISCOVERY] ✓ {collection.url} → {len(products)} product(s).")
        groups.append(CollectionGroup(collection=collection, products=products))

    candidates = flatten_candidates(groups)
    print(f"[DISCOVERY] {len(candidates)} unique product candidate(s).")
    return Discovery(
        homepage_url=homepage_url,
        homepage_html=homepage_html,
        collections=groups,
        candidates=candidates,
        failures=failures,
    )
