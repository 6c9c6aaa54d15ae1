"""Tests for lexical link classification and the homepage link summary.

Pure functions; no mocking required.
"""

from __future__ import annotations

import pytest

from shopaudit.scraper.classifier import (
    CATEGORY,
    OTHER,
    PRODUCT,
    classify_link,
    is_collection_url,
    is_product_url,
    summarize_links,
)
from shopaudit.scraper.models import Link


class TestClassifyLink:
    @pytest.mark.parametrize(
        "url",
        [
            "https://s.example/collections/summer",
            "https://s.example/category/shoes",
            "https://s.example/shop/sale",
            "https://s.example/browse/all",
            "https://s.example/women/",
        ],
    )
    def test_category_paths(self, url):
        assert classify_link(url) == CATEGORY

    @pytest.mark.parametrize(
        "url",
        [
            "https://s.example/products/blue-mug",
            "https://s.example/product/123",
            "https://s.example/item/9",
            "https://s.example/p/abc",
        ],
    )
    def test_product_paths(self, url):
        assert classify_link(url, "Blue mug") == PRODUCT

    def test_category_wins_over_product(self):
        assert classify_link("https://s.example/collections/mugs/products/blue") == CATEGORY

    def test_keyword_in_text_makes_category(self):
        assert classify_link("https://s.example/pages/x", "Shop Jewelry") == CATEGORY

    def test_keyword_mode_off_ignores_product_names(self):
        url = "https://s.example/products/mens-running-shoes"
        assert classify_link(url, "Men's Running Shoes") == CATEGORY
        assert classify_link(url, "Men's Running Shoes", keywords=False) == PRODUCT

    def test_case_insensitive(self):
        assert classify_link("https://s.example/PRODUCTS/X", "x") == PRODUCT

    def test_other(self):
        assert classify_link("https://s.example/about", "About us") == OTHER

    def test_products_path_is_not_a_category_keyword(self):
        assert classify_link("https://s.example/products/lamp", "Lamp") == PRODUCT

    @pytest.mark.parametrize(
        "url, text, expected",
        [
            ("https://shop.example.com/pages/about", "About us", OTHER),
            ("https://brand.myshopify.com/products/lamp", "Lamp", PRODUCT),
            ("https://shop.example.com/sale-catalog", "Sale", CATEGORY),
        ],
    )
    def test_keywords_ignore_the_host(self, url, text, expected):
        assert classify_link(url, text) == expected


class TestUrlPredicates:
    def test_collection_urls_are_strict(self):
        assert is_collection_url("https://s.example/collections/new")
        assert not is_collection_url("https://s.example/women/")

    def test_product_url(self):
        assert is_product_url("https://s.example/products/x")
        assert not is_product_url("https://s.example/pages/x")


class TestSummarizeLinks:
    def test_sorted_by_bucket_then_label(self):
        links = [
            Link("https://s.example/about", "About"),
            Link("https://s.example/products/b", "beta"),
            Link("https://s.example/collections/z", "Zebra"),
            Link("https://s.example/products/a", "Alpha"),
            Link("https://s.example/collections/a", "apple"),
        ]
        report = summarize_links(links)
        assert [item["text"] for item in report["links"]] == [
            "apple", "Zebra", "Alpha", "beta", "About",
        ]
        assert report["stats"] == {"total": 5, "categories": 2, "products": 2, "other": 1}

    def test_unlabelled_links_skipped(self):
        report = summarize_links([Link("https://s.example/products/a", "")])
        assert report["links"] == []
        assert report["stats"]["total"] == 0

    def test_shop_subdomain_does_not_inflate_categories(self):
        links = [
            Link("https://shop.example.com/products/a", "Alpha"),
            Link("https://shop.example.com/pages/faq", "FAQ"),
            Link("https://shop.example.com/collections/new", "New in"),
        ]
        assert summarize_links(links)["stats"] == {"total": 3, "categories": 1, "products": 1, "other": 1}

    def test_limit(self):
        links = [Link(f"https://s.example/products/{i}", f"P{i}") for i in range(10)]
        assert summarize_links(links, limit=3)["stats"]["total"] == 3
