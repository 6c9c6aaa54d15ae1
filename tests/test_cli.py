"""Tests for the ``shopaudit`` typer CLI.

Mocking strategy:
- Commands import their workers lazily, so ``fetch_html``,
  ``discover_candidates`` and ``run_analysis`` are patched on their home
  modules and picked up at call time.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

from typer.testing import CliRunner

from cli.main import app
from shopaudit.analysis.events import CATEGORY_COMPLETE, COMPLETE, START, ProgressEvent
from shopaudit.analysis.selector import Discovery
from shopaudit.scraper.fetcher import FetchError
from shopaudit.scraper.models import CollectionGroup, Link

from tests.helpers import BASE, HOME, HOMEPAGE_HTML

runner = CliRunner()

_PAYLOAD = {
    "collections": [],
    "topProducts": [{"url": f"{BASE}/products/tee-1", "title": "Tee 1", "reason": None, "image": None}],
    "analysis": {
        "executiveSummary": "Strong brand.",
        "inferredBrandPositioning": "Everyday basics.",
        "brandAlignment": {"score": 72, "summary": "Consistent.", "ok": True},
        "conversionEffectiveness": {"score": 81, "summary": "Clear CTAs.", "ok": True},
        "seoAiBestPractices": {"score": 0, "summary": "Unable to analyze SEO and AI Best Practices", "ok": False},
        "problematicContent": [],
        "dimensionOrder": [],
    },
    "stats": {"collectionsCount": 1, "productsFetchedCount": 1},
}


def _fake_run(payload, events):
    async def _run(url, emit, *, registry, rng=None, client=None):
        _run.url = url
        for event in events:
            emit(event)
        return payload

    return _run


# ---------------------------------------------------------------------------
# links / collections
# ---------------------------------------------------------------------------

def test_links_lists_classified_links():
    with patch("shopaudit.scraper.fetcher.fetch_html", new=AsyncMock(return_value=HOMEPAGE_HTML)):
        result = runner.invoke(app, ["links", "store.example"])

    assert result.exit_code == 0, result.output
    assert "7 link(s): 5 category, 1 product, 1 other" in result.output
    assert f"{BASE}/collections/shirts" in result.output


def test_links_fetch_failure_exits_1():
    error = FetchError(HOME, "Unable to reach store.example: refused")
    with patch("shopaudit.scraper.fetcher.fetch_html", new=AsyncMock(side_effect=error)):
        result = runner.invoke(app, ["links", HOME])

    assert result.exit_code == 1


def test_collections_lists_products():
    discovery = Discovery(
        homepage_url=HOME,
        homepage_html="",
        collections=[
            CollectionGroup(
                Link(f"{BASE}/collections/shirts", "Shirts"),
                [Link(f"{BASE}/products/tee-1", "Tee 1")],
            )
        ],
    )
    with patch("shopaudit.analysis.selector.discover_candidates", new=AsyncMock(return_value=discovery)):
        result = runner.invoke(app, ["collections", "store.example"])

    assert result.exit_code == 0, result.output
    assert "Shirts" in result.output
    assert f"{BASE}/products/tee-1" in result.output


def test_collections_none_found():
    discovery = Discovery(homepage_url=HOME, homepage_html="")
    with patch("shopaudit.analysis.selector.discover_candidates", new=AsyncMock(return_value=discovery)):
        result = runner.invoke(app, ["collections", HOME])

    assert result.exit_code == 0
    assert "No collection pages found" in result.output


# ---------------------------------------------------------------------------
# analyze
# ---------------------------------------------------------------------------

def test_analyze_renders_progress_and_report():
    events = [
        ProgressEvent(START, "Starting analysis..."),
        ProgressEvent(
            CATEGORY_COMPLETE,
            "Brand Alignment analyzed",
            {"category": "Brand Alignment", "categoryKey": "brandAlignment", "score": 72, "summary": "Consistent."},
        ),
        ProgressEvent(COMPLETE, "Analysis complete", _PAYLOAD),
    ]
    fake = _fake_run(_PAYLOAD, events)
    with patch("shopaudit.analysis.orchestrator.run_analysis", new=fake):
        result = runner.invoke(app, ["analyze", "store.example"])

    assert result.exit_code == 0, result.output
    assert fake.url == "https://store.example"
    assert "Brand Alignment: 72/100" in result.output
    assert "Everyday basics." in result.output
    assert "not scored" in result.output


def test_analyze_json_output():
    fake = _fake_run(_PAYLOAD, [ProgressEvent(COMPLETE, "Analysis complete", _PAYLOAD)])
    with patch("shopaudit.analysis.orchestrator.run_analysis", new=fake):
        result = runner.invoke(app, ["analyze", HOME, "--json", "--seed", "3"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == _PAYLOAD


def test_analyze_failure_exits_1_with_error_json():
    fake = _fake_run(None, [ProgressEvent(START), ProgressEvent.failure("No product URLs found.")])
    with patch("shopaudit.analysis.orchestrator.run_analysis", new=fake):
        result = runner.invoke(app, ["analyze", HOME, "--json"])

    assert result.exit_code == 1
    assert json.loads(result.output) == {"error": "No product URLs found."}
