"""Infer a short brand-positioning statement from the collected content."""

from __future__ import annotations

from typing import Sequence

from shopaudit.analysis.prompts import AnalysisContext, positioning_messages
from shopaudit.llm.fallback import ModelRegistry, chat_json, parse_response
from shopaudit.llm.schemas import PositioningResponse
from shopaudit.scraper.models import DigitalSource, PageContent

POSITIONING_UNAVAILABLE = "Unable to infer brand positioning"


async def infer_positioning(
    pages: Sequence[PageContent],
    sources: Sequence[DigitalSource],
    *,
    registry: ModelRegistry,
) -> str:
    """Return a 2–4 sentence positioning statement.

    Positioning only feeds later prompts, so failure degrades to
    :data:`POSITIONING_UNAVAILABLE` instead of raising.
    """
    context = AnalysisContext.build(pages, sources)
    print(f"[POSITIONING] Inferring from {context.total_sources} source(s) …")
    outcome = await chat_json(positioning_messages(context), registry=registry, temperature=0.3)
    reply = parse_response(outcome, PositioningResponse)
    if reply is None:
        print("[POSITIONING] ✗ No usable reply.")
        return POSITIONING_UNAVAILABLE
    return reply.positioning.strip()
