"""Scraper package — fetching, link extraction and classification."""

from shopaudit.scraper.classifier import classify_link
from shopaudit.scraper.extractor import extract_links, extract_product_image, extract_text
from shopaudit.scraper.fetcher import FetchError, fetch_html, fetch_many
from shopaudit.scraper.models import CollectionGroup, DigitalSource, Link, PageContent

__all__ = [
    "classify_link",
    "extract_links",
    "extract_product_image",
    "extract_text",
    "fetch_html",
    "fetch_many",
    "FetchError",
    "Link",
    "CollectionGroup",
    "PageContent",
    "DigitalSource",
]
