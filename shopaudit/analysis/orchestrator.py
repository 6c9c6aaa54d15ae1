"""Streaming analysis pipeline.

Stage order and the event each stage emits on success::

    start → (discover + rank) initial → (collect) products_fetched
          → (positioning) progress → (scoring) progress / category_* ×3
          → (summary) progress → complete

Every run ends with exactly one ``complete`` or one ``error`` event.  The
terminal failures each carry a message telling the user what to do next:
the site blocking us (homepage or every collection page), the site not
responding, no products found, nothing fetched, or the whole run exceeding
``settings.analysis_timeout``.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, AsyncIterator, Optional

import httpx

from shopaudit.analysis.collector import collect_pages
from shopaudit.analysis.events import (
    COMPLETE,
    INITIAL,
    PRODUCTS_FETCHED,
    PROGRESS,
    START,
    EventChannel,
    ProgressEvent,
    Sink,
)
from shopaudit.analysis.models import DIMENSIONS, CategoryScore, ConsolidatedAnalysis
from shopaudit.analysis.positioning import infer_positioning
from shopaudit.analysis.prompts import AnalysisContext
from shopaudit.analysis.ranker import rank_products
from shopaudit.analysis.scorer import score_dimensions, summarize
from shopaudit.analysis.selector import Discovery, discover_candidates
from shopaudit.config import settings
from shopaudit.llm.fallback import ModelRegistry
from shopaudit.scraper.fetcher import FetchError, build_client, fetch_html
from shopaudit.scraper.models import website_source

NO_PRODUCTS_MESSAGE = (
    "No product URLs found on this website. We look for collection or category "
    "pages linked from the homepage; please try the URL of a store with a "
    "standard product catalog."
)
NO_PAGES_MESSAGE = (
    "No product pages could be analyzed successfully. The product pages may be "
    "blocking automated requests; please try again later or use a different site."
)
ANALYSIS_FAILED_MESSAGE = "Analysis failed unexpectedly. Please try again."


class AnalysisAborted(Exception):
    """A terminal pipeline condition; the message is shown to the user."""


def _timeout_message() -> str:
    return (
        f"The analysis did not finish within {settings.analysis_timeout:.0f} seconds. "
        "The website or the analysis service may be slow; please try again later."
    )


def _fetch_failure(exc: FetchError, timeout: float) -> AnalysisAborted:
    if exc.timed_out:
        return AnalysisAborted(
            f"The website did not respond within {timeout:.0f} seconds. "
            "Please check the address or try again later."
        )
    return AnalysisAborted(exc.reason)


def _no_candidates(discovery: Discovery) -> AnalysisAborted:
    """Pick the terminal message for a crawl that produced no candidates.

    When every followed collection page failed, a block or a timeout is
    reported as such instead of as a catalogue without products.
    """
    if discovery.failures and not discovery.collections:
        for exc in discovery.failures:
            if exc.blocked:
                return _fetch_failure(exc, settings.request_timeout)
        for exc in discovery.failures:
            if exc.timed_out:
                return _fetch_failure(exc, settings.request_timeout)
    return AnalysisAborted(NO_PRODUCTS_MESSAGE)


async def _pipeline(
    url: str,
    channel: EventChannel,
    *,
    registry: ModelRegistry,
    rng: Optional[random.Random],
    client: httpx.AsyncClient,
) -> dict[str, Any]:
    channel.emit(ProgressEvent(START, "Starting analysis..."))

    # 1) Homepage → collections → candidates
    try:
        homepage_html = await fetch_html(url, client=client, timeout=settings.site_probe_timeout)
    except FetchError as exc:
        raise _fetch_failure(exc, settings.site_probe_timeout) from exc

    discovery = await discover_candidates(
        url,
        client=client,
        homepage_html=homepage_html,
        max_collections=settings.max_collections,
    )
    if not discovery.candidates:
        raise _no_candidates(discovery)

    # 2) Ranking
    ranking = await rank_products(discovery.candidates, registry=registry)
    collections = [g.to_dict() for g in discovery.collections]
    channel.emit(
        ProgressEvent(
            INITIAL,
            f"Selected {len(ranking.products)} of {len(discovery.candidates)} product(s) for analysis",
            {
                "collections": collections,
                "topProducts": [p.to_dict() for p in ranking.products],
                "usedFallback": ranking.used_fallback,
                "stats": {"collectionsCount": len(discovery.collections), "productsFetchedCount": 0},
            },
        )
    )

    # 3) Product pages
    pages = await collect_pages(ranking.products, client=client)
    if not pages:
        raise AnalysisAborted(NO_PAGES_MESSAGE)

    images = {page.url: page.image for page in pages}
    for product in ranking.products:
        product.image = images.get(product.url)
    channel.emit(
        ProgressEvent(
            PRODUCTS_FETCHED,
            f"Fetched {len(pages)} product page(s)",
            {"count": len(pages)},
        )
    )

    # 4) Positioning
    sources = [website_source(url, discovery.homepage_html)]
    positioning = await infer_positioning(pages, sources, registry=registry)
    channel.emit(
        ProgressEvent(
            PROGRESS,
            "Brand positioning inferred",
            {"stage": "positioning", "positioning": positioning},
        )
    )

    # 5) Scoring
    context = AnalysisContext.build(pages, sources, positioning)
    scores, order = await score_dimensions(context, registry=registry, emit=channel.emit, rng=rng)

    # 6) Executive summary
    channel.emit(
        ProgressEvent(
            PROGRESS,
            "Generating executive summary...",
            {"stage": "summary", "category": "Executive Summary"},
        )
    )
    executive_summary = await summarize(context, scores, registry=registry)

    def _score(key: str) -> CategoryScore:
        dimension = next(d for d in DIMENSIONS if d.key == key)
        return scores.get(key) or CategoryScore.unavailable(dimension)

    analysis = ConsolidatedAnalysis(
        executive_summary=executive_summary,
        inferred_brand_positioning=positioning,
        brand_alignment=_score("brandAlignment"),
        conversion_effectiveness=_score("conversionEffectiveness"),
        seo_ai_best_practices=_score("seoAiBestPractices"),
        dimension_order=order,
    )
    payload = {
        "collections": collections,
        "topProducts": [p.to_dict() for p in ranking.products],
        "analysis": analysis.to_dict(),
        "stats": {
            "collectionsCount": len(discovery.collections),
            "productsFetchedCount": len(pages),
        },
    }
    channel.emit(ProgressEvent(COMPLETE, "Analysis complete", payload))
    return payload


async def run_analysis(
    url: str,
    emit: Sink | EventChannel,
    *,
    registry: ModelRegistry,
    rng: Optional[random.Random] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[dict[str, Any]]:
    """Run the full pipeline for *url*, reporting progress through *emit*.

    Args:
        url: Store homepage (absolute, with scheme).
        emit: Sink called with each :class:`ProgressEvent`, or an
            :class:`EventChannel` the caller already owns.
        registry: Model memory for the oracle fallback layer.
        rng: Random source for the dimension shuffle.
        client: Shared HTTP client; one is created for the run when omitted.

    Returns:
        The ``complete`` payload, or ``None`` if the run ended in ``error``.
        Failures are never raised; they are reported as one ``error`` event.
    """
    channel = emit if isinstance(emit, EventChannel) else EventChannel(emit)

    async def _guarded(http: httpx.AsyncClient) -> Optional[dict[str, Any]]:
        try:
            return await asyncio.wait_for(
                _pipeline(url, channel, registry=registry, rng=rng, client=http),
                timeout=settings.analysis_timeout,
            )
        except asyncio.TimeoutError:
            print(f"[ANALYSIS] ✗ Timed out after {settings.analysis_timeout}s: {url}")
            channel.emit(ProgressEvent.failure(_timeout_message()))
        except AnalysisAborted as exc:
            print(f"[ANALYSIS] ✗ {url}: {exc}")
            channel.emit(ProgressEvent.failure(str(exc)))
        except Exception as exc:  # noqa: BLE001
            print(f"[ANALYSIS] ✗ Unexpected failure for {url}: {exc!r}")
            channel.emit(ProgressEvent.failure(ANALYSIS_FAILED_MESSAGE))
        return None

    if client is not None:
        return await _guarded(client)
    async with build_client() as own_client:
        return await _guarded(own_client)


async def stream_analysis(
    url: str,
    *,
    registry: ModelRegistry,
    rng: Optional[random.Random] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> AsyncIterator[ProgressEvent]:
    """Yield progress events for an analysis run as they happen.

    The pipeline runs as a background task.  Closing the iterator early
    (client disconnected, caller cancelled) closes the channel and cancels
    the task without waiting for in-flight requests.
    """
    queue: asyncio.Queue[ProgressEvent | None] = asyncio.Queue()
    channel = EventChannel(queue.put_nowait)

    async def _run() -> None:
        try:
            await run_analysis(url, channel, registry=registry, rng=rng, client=client)
        finally:
            queue.put_nowait(None)  # sentinel

    task = asyncio.create_task(_run())
    try:
        while True:
            event = await queue.get()
            if event is None:
                break
            yield event
    finally:
        channel.close()
        if not task.done():
            print(f"[ANALYSIS] Run for {url} cancelled by caller.")
            task.cancel()


async def analyze_site(
    url: str,
    *,
    registry: ModelRegistry,
    rng: Optional[random.Random] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> dict[str, Any]:
    """Non-streaming variant: return the final payload or ``{"error": ...}``."""
    channel = EventChannel(lambda event: None)
    payload = await run_analysis(url, channel, registry=registry, rng=rng, client=client)
    if payload is not None:
        return payload
    terminal = channel.terminal_event
    return {"error": terminal.message if terminal else ANALYSIS_FAILED_MESSAGE}
