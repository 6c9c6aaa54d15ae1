"""Lexical link classification into ``category`` / ``product`` / ``other``.

Rules are applied in order and the first match wins:

1. URL contains a category path segment, or (keyword mode) the anchor text or
   URL path contains a category keyword  →  ``category``
2. URL contains a product path segment  →  ``product``
3. anything else  →  ``other``

Only the URL string and anchor label are inspected; document structure and
link position play no part.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Literal
from urllib.parse import urlparse

from shopaudit.scraper.models import Link

LinkCategory = Literal["category", "product", "other"]

CATEGORY = "category"
PRODUCT = "product"
OTHER = "other"

# Collection listings proper.  The candidate selector only trusts these.
COLLECTION_PATTERNS = ["/collections/", "/category/", "/categories/", "/shop/", "/browse/"]

CATEGORY_URL_PATTERNS = COLLECTION_PATTERNS + [
    "/men/", "/women/", "/kids/", "/baby/", "/home/", "/kitchen/",
    "/clothing/", "/shoes/", "/accessories/", "/electronics/", "/books/",
]

# "products" and "home" are deliberately absent: as substrings they would
# swallow every /products/ URL and most navigation links.
CATEGORY_KEYWORDS = [
    "collection", "category", "shop", "browse", "catalog",
    "men", "women", "kids", "baby", "kitchen", "bedroom",
    "clothing", "shoes", "accessories", "electronics", "books",
    "outdoor", "sports", "beauty", "health", "jewelry", "watches",
    "bags", "furniture", "decor", "garden", "tools", "automotive",
]

PRODUCT_URL_PATTERNS = ["/products/", "/product/", "/item/", "/items/", "/p/"]

_PRIORITY = {CATEGORY: 0, PRODUCT: 1, OTHER: 2}


def is_collection_url(url: str) -> bool:
    """Return ``True`` if *url* looks like a collection listing page."""
    lower = url.lower()
    return any(p in lower for p in COLLECTION_PATTERNS)


def is_product_url(url: str) -> bool:
    """Return ``True`` if *url* contains a product path segment."""
    lower = url.lower()
    return any(p in lower for p in PRODUCT_URL_PATTERNS)


def classify_link(url: str, text: str = "", *, keywords: bool = True) -> LinkCategory:
    """Bucket a link into ``category``, ``product`` or ``other``.

    Args:
        url: Absolute link target.
        text: Anchor label (may be empty).
        keywords: Also match category keywords against the text and the URL
            path (never the host, so shop.example.com stays neutral).  Pages
            listing products often carry keyword-laden product names
            ("Men's Running Shoes"), so crawling code turns this off and
            relies on path segments alone.
    """
    lower_url = url.lower()
    lower_path = urlparse(lower_url).path
    lower_text = text.lower()

    if any(p in lower_url for p in CATEGORY_URL_PATTERNS):
        return CATEGORY
    if keywords and any(k in lower_text or k in lower_path for k in CATEGORY_KEYWORDS):
        return CATEGORY
    if is_product_url(url):
        return PRODUCT
    return OTHER


def summarize_links(links: Iterable[Link], limit: int = 500) -> dict[str, Any]:
    """Classify up to *limit* links and return them with per-bucket counts.

    Links are sorted by bucket (categories, then products, then the rest) and
    alphabetically by label within a bucket.  Unlabelled links are skipped.
    """
    classified: List[dict[str, str]] = []
    for link in list(links)[:limit]:
        if not link.text:
            continue
        classified.append(
            {"url": link.url, "text": link.text, "category": classify_link(link.url, link.text)}
        )

    classified.sort(key=lambda item: (_PRIORITY[item["category"]], item["text"].lower()))
    print(f"[CLASSIFY] {len(classified)} link(s) classified.")

    return {
        "links": classified,
        "stats": {
            "total": len(classified),
            "categories": sum(1 for c in classified if c["category"] == CATEGORY),
            "products": sum(1 for c in classified if c["category"] == PRODUCT),
            "other": sum(1 for c in classified if c["category"] == OTHER),
        },
    }
