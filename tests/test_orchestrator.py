"""End-to-end tests for the analysis pipeline.

Mocking strategy:
- ``store`` (conftest) serves the sample catalogue through ``respx``.
- ``fake_oracle`` (conftest) patches ``shopaudit.llm.fallback._get_llm``; tests
  that need a failing or slow model patch it themselves with their own fake.
- ``settings.analysis_timeout`` is lowered with ``monkeypatch`` for the
  whole-run timeout test.
"""

from __future__ import annotations

import asyncio
import json
import random
from contextlib import aclosing
from unittest.mock import AsyncMock, patch

import httpx

from shopaudit.analysis.events import (
    CATEGORY_COMPLETE,
    CATEGORY_ERROR,
    COMPLETE,
    ERROR,
    INITIAL,
    PRODUCTS_FETCHED,
    START,
    ProgressEvent,
)
from shopaudit.analysis.models import DIMENSIONS
from shopaudit.analysis.orchestrator import (
    ANALYSIS_FAILED_MESSAGE,
    NO_PAGES_MESSAGE,
    NO_PRODUCTS_MESSAGE,
    analyze_site,
    run_analysis,
    stream_analysis,
)
from shopaudit.analysis.positioning import POSITIONING_UNAVAILABLE
from shopaudit.analysis.ranker import FALLBACK_REASON
from shopaudit.analysis.scorer import SUMMARY_UNAVAILABLE
from shopaudit.config import settings

from tests.helpers import BASE, HOME, PRODUCT_URLS, FakeLLM, happy_responder


async def _run(registry, *, rng=None, client=None):
    events: list[ProgressEvent] = []
    payload = await run_analysis(HOME, events.append, registry=registry, rng=rng, client=client)
    return payload, events


def _types(events: list[ProgressEvent]) -> list[str]:
    return [e.type for e in events]


def _assert_single_terminal(events: list[ProgressEvent]) -> None:
    terminal = [e for e in events if e.terminal]
    assert len(terminal) == 1
    assert events[-1] is terminal[0]
    keys = [e.data["categoryKey"] for e in events if e.type in (CATEGORY_COMPLETE, CATEGORY_ERROR)]
    assert len(keys) == len(set(keys))


def _down(system: str, user: str) -> str:
    raise RuntimeError("503 Service Unavailable")


class _SlowLLM:
    """Blocks in ``ainvoke`` until cancelled."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.cancelled = asyncio.Event()

    async def ainvoke(self, messages):
        self.started.set()
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            self.cancelled.set()
            raise
        return None


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

class TestHappyPath:
    async def test_complete_payload(self, store, fake_oracle, registry):
        async with httpx.AsyncClient() as client:
            payload, events = await _run(registry, client=client)

        assert payload is not None
        assert payload["stats"] == {"collectionsCount": 2, "productsFetchedCount": 6}
        assert [c["collection"]["url"] for c in payload["collections"]] == [
            f"{BASE}/collections/shirts",
            f"{BASE}/collections/pants",
        ]

        top = payload["topProducts"]
        assert [p["url"] for p in top] == PRODUCT_URLS[:6]
        assert all(p["image"] == f"{BASE}/cdn/product.jpg" for p in top)

        analysis = payload["analysis"]
        assert analysis["brandAlignment"]["score"] == 72
        assert analysis["conversionEffectiveness"]["score"] == 81
        assert analysis["seoAiBestPractices"]["score"] == 65
        assert analysis["inferredBrandPositioning"] == "Durable everyday basics for busy people."
        assert analysis["executiveSummary"] == "A coherent brand with room to improve SEO."
        assert analysis["problematicContent"] == []
        json.dumps(payload)

    async def test_event_sequence(self, store, fake_oracle, registry):
        async with httpx.AsyncClient() as client:
            payload, events = await _run(registry, client=client)

        types = _types(events)
        assert types[0] == START
        assert types.index(INITIAL) < types.index(PRODUCTS_FETCHED)
        assert types[-1] == COMPLETE
        assert types.count(CATEGORY_COMPLETE) == 3
        _assert_single_terminal(events)

        initial = events[types.index(INITIAL)].data
        assert initial["usedFallback"] is False
        assert initial["stats"] == {"collectionsCount": 2, "productsFetchedCount": 0}
        assert events[types.index(PRODUCTS_FETCHED)].data["count"] == 6
        assert events[-1].data == payload

    async def test_seeded_dimension_order(self, store, fake_oracle, registry):
        expected = list(DIMENSIONS)
        random.Random(7).shuffle(expected)

        async with httpx.AsyncClient() as client:
            payload, _ = await _run(registry, rng=random.Random(7), client=client)

        assert payload["analysis"]["dimensionOrder"] == [d.title for d in expected]

    async def test_creates_own_client(self, store, fake_oracle, registry):
        payload, _ = await _run(registry)
        assert payload is not None

    async def test_hallucinated_urls_never_reach_the_result(self, store, registry):
        def responder(system, user):
            if "NEVER generate fictional URLs" in system:
                return json.dumps(
                    {
                        "topProducts": [
                            {"url": "https://example.com/products/invented", "title": "Invented"},
                            {"url": PRODUCT_URLS[2], "title": "Tee 3"},
                        ]
                    }
                )
            return happy_responder(system, user)

        with patch("shopaudit.llm.fallback._get_llm", return_value=FakeLLM(responder)):
            async with httpx.AsyncClient() as client:
                payload, _ = await _run(registry, client=client)

        assert [p["url"] for p in payload["topProducts"]] == [PRODUCT_URLS[2]]
        assert payload["stats"]["productsFetchedCount"] == 1
        assert store["products"].call_count == 1


# ---------------------------------------------------------------------------
# Degraded oracle
# ---------------------------------------------------------------------------

class TestOracleOutage:
    async def test_total_outage_still_completes(self, store, registry):
        with patch("shopaudit.llm.fallback._get_llm", return_value=FakeLLM(_down)):
            async with httpx.AsyncClient() as client:
                payload, events = await _run(registry, client=client)

        assert payload is not None
        assert [p["url"] for p in payload["topProducts"]] == PRODUCT_URLS
        assert all(p["reason"] == FALLBACK_REASON for p in payload["topProducts"])
        analysis = payload["analysis"]
        for dim in DIMENSIONS:
            assert analysis[dim.key] == {
                "score": 0,
                "summary": f"Unable to analyze {dim.title}",
                "ok": False,
            }
        assert analysis["inferredBrandPositioning"] == POSITIONING_UNAVAILABLE
        assert analysis["executiveSummary"] == SUMMARY_UNAVAILABLE

        types = _types(events)
        assert types.count(CATEGORY_ERROR) == 3
        assert events[types.index(INITIAL)].data["usedFallback"] is True
        _assert_single_terminal(events)


# ---------------------------------------------------------------------------
# Terminal failures
# ---------------------------------------------------------------------------

class TestTerminalFailures:
    async def test_no_candidates_skips_oracle(self, store, fake_oracle, registry):
        store["home"].mock(return_value=httpx.Response(200, text="<a href='/about'>About</a>"))
        async with httpx.AsyncClient() as client:
            payload, events = await _run(registry, client=client)

        assert payload is None
        assert _types(events) == [START, ERROR]
        assert events[-1].message == NO_PRODUCTS_MESSAGE
        fake_oracle.assert_not_called()

    async def test_blocked_collections_reported_as_blocking(self, store, fake_oracle, registry):
        store["shirts"].mock(return_value=httpx.Response(403))
        store["pants"].mock(return_value=httpx.Response(403))
        async with httpx.AsyncClient() as client:
            payload, events = await _run(registry, client=client)

        assert payload is None
        assert _types(events) == [START, ERROR]
        assert "blocking automated requests" in events[-1].message
        assert events[-1].message != NO_PRODUCTS_MESSAGE
        fake_oracle.assert_not_called()

    async def test_timed_out_collections_reported_as_timeout(self, store, fake_oracle, registry):
        store["shirts"].mock(side_effect=httpx.ReadTimeout("timed out"))
        store["pants"].mock(side_effect=httpx.ReadTimeout("timed out"))
        async with httpx.AsyncClient() as client:
            _, events = await _run(registry, client=client)

        assert _types(events) == [START, ERROR]
        assert "did not respond within" in events[-1].message

    async def test_one_blocked_collection_does_not_abort(self, store, fake_oracle, registry):
        store["shirts"].mock(return_value=httpx.Response(403))
        async with httpx.AsyncClient() as client:
            payload, events = await _run(registry, client=client)

        assert payload is not None
        assert events[-1].type == COMPLETE

    async def test_blocked_homepage(self, store, fake_oracle, registry):
        store["home"].mock(return_value=httpx.Response(403))
        async with httpx.AsyncClient() as client:
            payload, events = await _run(registry, client=client)

        assert payload is None
        assert _types(events) == [START, ERROR]
        assert "blocking automated requests" in events[-1].message
        assert events[-1].data["error"] == events[-1].message

    async def test_homepage_timeout(self, store, fake_oracle, registry):
        store["home"].mock(side_effect=httpx.ReadTimeout("timed out"))
        async with httpx.AsyncClient() as client:
            _, events = await _run(registry, client=client)

        assert "did not respond within 5 seconds" in events[-1].message

    async def test_no_pages_fetched(self, store, fake_oracle, registry):
        store["products"].mock(return_value=httpx.Response(500))
        async with httpx.AsyncClient() as client:
            payload, events = await _run(registry, client=client)

        assert payload is None
        assert _types(events) == [START, INITIAL, ERROR]
        assert events[-1].message == NO_PAGES_MESSAGE

    async def test_whole_run_timeout(self, store, registry, monkeypatch):
        monkeypatch.setattr(settings, "analysis_timeout", 0.2)
        with patch("shopaudit.llm.fallback._get_llm", return_value=_SlowLLM()):
            async with httpx.AsyncClient() as client:
                payload, events = await _run(registry, client=client)

        assert payload is None
        assert _types(events) == [START, ERROR]
        assert "did not finish" in events[-1].message

    async def test_unexpected_error_reported_once(self, store, fake_oracle, registry):
        with patch(
            "shopaudit.analysis.orchestrator.collect_pages",
            new=AsyncMock(side_effect=RuntimeError("bug")),
        ):
            async with httpx.AsyncClient() as client:
                payload, events = await _run(registry, client=client)

        assert payload is None
        assert events[-1].message == ANALYSIS_FAILED_MESSAGE
        _assert_single_terminal(events)


# ---------------------------------------------------------------------------
# Streaming and non-streaming front doors
# ---------------------------------------------------------------------------

class TestStreamAnalysis:
    async def test_yields_every_event_in_order(self, store, fake_oracle, registry):
        async with httpx.AsyncClient() as client:
            events = [e async for e in stream_analysis(HOME, registry=registry, client=client)]

        assert events[0].type == START
        assert events[-1].type == COMPLETE
        _assert_single_terminal(events)

    async def test_closing_early_cancels_the_run(self, store, registry):
        slow = _SlowLLM()
        with patch("shopaudit.llm.fallback._get_llm", return_value=slow):
            async with httpx.AsyncClient() as client:
                async with aclosing(stream_analysis(HOME, registry=registry, client=client)) as stream:
                    first = await stream.__anext__()
                    await asyncio.wait_for(slow.started.wait(), timeout=2)
                assert first.type == START
                await asyncio.wait_for(slow.cancelled.wait(), timeout=2)


class TestAnalyzeSite:
    async def test_returns_payload(self, store, fake_oracle, registry):
        async with httpx.AsyncClient() as client:
            result = await analyze_site(HOME, registry=registry, client=client)
        assert result["stats"]["productsFetchedCount"] == 6

    async def test_returns_error_message(self, store, fake_oracle, registry):
        store["home"].mock(return_value=httpx.Response(200, text="<p>empty</p>"))
        async with httpx.AsyncClient() as client:
            result = await analyze_site(HOME, registry=registry, client=client)
        assert result == {"error": NO_PRODUCTS_MESSAGE}
