"""HTML extraction: anchor links, readable text and the main product image."""

from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import urljoin

import trafilatura
from bs4 import BeautifulSoup

from shopaudit.scraper.models import Link

# Cap on extracted page text handed to prompts.
_MAX_TEXT_CHARS = 8000

_STYLE_BLOCK_RE = re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
_STYLESHEET_LINK_RE = re.compile(
    r"<link[^>]*rel=[\"']stylesheet[\"'][^>]*>", re.IGNORECASE
)
_ANCHOR_RE = re.compile(
    r"<a[^>]*href=[\"']([^\"']+)[\"'][^>]*>(.*?)</a>", re.IGNORECASE | re.DOTALL
)
_TAG_RE = re.compile(r"<[^>]*>")
_IMAGE_EXT_RE = re.compile(r"\.(jpg|jpeg|png|webp|gif|svg)(\?|$)", re.IGNORECASE)

# Ordered by priority: the first selector that yields a usable image wins.
_PRODUCT_IMAGE_SELECTORS = [
    'img[data-src*="product"]',
    'img[src*="product"]',
    ".product-image img",
    ".product-photo img",
    ".product-gallery img",
    ".main-image img",
    ".hero-image img",
    ".featured-image img",
    'img[alt*="product"]',
    'img[class*="product"]',
    "picture img",
    ".image-container img",
    "main img",
    "img[data-src]",
    "img[src]",
]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _strip_styles(html: str) -> str:
    """Remove ``<style>`` blocks and stylesheet ``<link>`` tags.

    Malformed CSS is the most common reason a parse blows up.
    """
    html = _STYLE_BLOCK_RE.sub("", html)
    return _STYLESHEET_LINK_RE.sub("", html)


def _is_http(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")


def _dedupe(links: List[Link]) -> List[Link]:
    seen: set[str] = set()
    unique: List[Link] = []
    for link in links:
        if link.url not in seen:
            seen.add(link.url)
            unique.append(link)
    return unique


def _parse_anchors(html: str, base_url: str) -> List[Link]:
    soup = BeautifulSoup(html, "html.parser")
    links: List[Link] = []
    for anchor in soup.find_all("a", href=True):
        href = str(anchor["href"]).strip()
        url = urljoin(base_url, href).strip()
        if not _is_http(url):
            continue
        text = (
            anchor.get_text(" ", strip=True)
            or str(anchor.get("aria-label") or "").strip()
            or str(anchor.get("title") or "").strip()
        )
        links.append(Link(url=url, text=text))
    return links


def _regex_fallback(html: str, base_url: str) -> List[Link]:
    """Scan ``<a href="...">...</a>`` pairs with a regex.

    Used when the DOM parser fails.  Malformed entries are skipped; this path
    never raises.
    """
    links: List[Link] = []
    for match in _ANCHOR_RE.finditer(html):
        try:
            url = urljoin(base_url, match.group(1).strip())
        except ValueError:
            continue
        if not _is_http(url):
            continue
        text = _TAG_RE.sub("", match.group(2)).strip()
        links.append(Link(url=url, text=text))
    return links


def _bs4_text(html: str) -> str:
    """Readable text using ``<main>``/``<article>``/``<body>`` heuristics."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "link", "noscript"]):
        tag.decompose()
    container = soup.find("main") or soup.find("article") or soup.body
    if container is None:
        return soup.get_text(separator=" ", strip=True)
    return container.get_text(separator=" ", strip=True)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_links(html: str, base_url: str, *, require_text: bool = False) -> List[Link]:
    """Return the absolute ``http(s)`` links found in *html*.

    Relative hrefs are resolved against *base_url*.  Links are deduplicated by
    exact URL, keeping the first occurrence, so the result preserves the order
    in which anchors appear in the document.

    Args:
        html: Raw page markup; may be arbitrarily malformed.
        base_url: URL the page was fetched from.
        require_text: Drop anchors whose label (text, ``aria-label`` or
            ``title``) is empty.
    """
    cleaned = _strip_styles(html)
    try:
        links = _parse_anchors(cleaned, base_url)
    except Exception as exc:  # noqa: BLE001
        print(f"[EXTRACT] DOM parse failed for {base_url!r} ({exc}); using regex fallback.")
        links = _regex_fallback(html, base_url)

    if require_text:
        links = [link for link in links if link.text]
    return _dedupe(links)


def extract_text(html: str, url: str | None = None) -> str:
    """Return readable, whitespace-collapsed text from *html*.

    Tries ``trafilatura`` first and falls back to a BeautifulSoup heuristic
    when it returns nothing (product pages are often too thin for readability
    scoring).
    """
    text: str | None = trafilatura.extract(
        html,
        include_links=False,
        include_images=False,
        include_tables=True,
        no_fallback=False,
        url=url,
    )
    if not text:
        text = _bs4_text(html)
    return re.sub(r"\s+", " ", text or "").strip()[:_MAX_TEXT_CHARS]


def extract_product_image(html: str, base_url: str) -> Optional[str]:
    """Return the absolute URL of the page's main product image, if any."""
    try:
        soup = BeautifulSoup(html, "html.parser")
        for selector in _PRODUCT_IMAGE_SELECTORS:
            img = soup.select_one(selector)
            if img is None:
                continue
            src = str(img.get("data-src") or img.get("src") or "").strip()
            if not src:
                continue
            image_url = urljoin(base_url, src)
            if _IMAGE_EXT_RE.search(image_url):
                return image_url
    except Exception as exc:  # noqa: BLE001
        print(f"[EXTRACT] image lookup failed for {base_url!r}: {exc}")
    return None
