"""Data models for the discovery pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Literal, Optional

PageType = Literal["product", "category"]


@dataclass(frozen=True)
class Link:
    """An anchor found on a page.  ``url`` is absolute and is the identity key."""

    url: str
    text: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url, "text": self.text}


@dataclass
class CollectionGroup:
    """A category page and the product links observed on it."""

    collection: Link
    products: List[Link] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection": self.collection.to_dict(),
            "products": [p.to_dict() for p in self.products],
        }


@dataclass(frozen=True)
class PageContent:
    """Fetched content of a selected page, consumed by the analysis stages."""

    url: str
    page_type: PageType
    content: str
    image: Optional[str] = None


@dataclass(frozen=True)
class DigitalSource:
    """Auxiliary evidence supplied alongside product pages.

    Only the homepage is collected today; the shape leaves room for reviews,
    social and press sources.
    """

    type: str
    source: str
    content: str
    url: str


def website_source(url: str, html: str) -> DigitalSource:
    """Return the homepage as a ``website`` digital source."""
    return DigitalSource(type="website", source=url, content=html, url=url)
