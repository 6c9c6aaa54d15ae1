"""Per-dimension scoring and the executive summary.

Each dimension is scored by its own oracle call.  The three calls run
concurrently in a shuffled order; the shuffle is cosmetic (it varies the order
a user sees results arrive in) and takes an injectable RNG so tests can pin
it.  A dimension that cannot be scored degrades to the ``0`` placeholder and
never cancels its siblings.
"""

from __future__ import annotations

import asyncio
import random
from typing import Callable, Mapping, Optional, Sequence

from shopaudit.analysis.events import (
    CATEGORY_COMPLETE,
    CATEGORY_ERROR,
    PROGRESS,
    ProgressEvent,
)
from shopaudit.analysis.models import DIMENSIONS, CategoryScore, Dimension
from shopaudit.analysis.prompts import AnalysisContext, dimension_messages, summary_messages
from shopaudit.llm.fallback import ModelRegistry, chat_json, parse_response
from shopaudit.llm.schemas import CategoryScoreResponse, ExecutiveSummaryResponse

SUMMARY_UNAVAILABLE = "Unable to generate executive summary"


class DimensionScoringError(Exception):
    """A dimension could not be scored."""

    def __init__(self, dimension: Dimension, detail: str) -> None:
        super().__init__(f"{dimension.title}: {detail}")
        self.dimension = dimension
        self.detail = detail


async def score_dimension(
    dimension: Dimension,
    context: AnalysisContext,
    *,
    registry: ModelRegistry,
) -> CategoryScore:
    """Score one dimension.

    Raises:
        DimensionScoringError: When every model failed or the reply did not
            carry an integer score between 1 and 100 and a summary.
    """
    outcome = await chat_json(dimension_messages(dimension, context), registry=registry)
    if not outcome.ok:
        raise DimensionScoringError(dimension, "; ".join(outcome.errors) or "all models failed")

    reply = parse_response(outcome, CategoryScoreResponse)
    if reply is None:
        raise DimensionScoringError(dimension, "reply did not contain a valid 1-100 score and summary")
    return CategoryScore(score=reply.score, summary=reply.summary.strip())


async def score_dimensions(
    context: AnalysisContext,
    *,
    registry: ModelRegistry,
    emit: Callable[[ProgressEvent], object],
    rng: Optional[random.Random] = None,
    dimensions: Sequence[Dimension] = DIMENSIONS,
) -> tuple[dict[str, CategoryScore], list[str]]:
    """Score every dimension concurrently, emitting an event as each settles.

    Returns:
        ``(scores by dimension key, dimension titles in processing order)``.
    """
    order = list(dimensions)
    (rng or random.Random()).shuffle(order)
    titles = [d.title for d in order]
    total = len(order)
    print(f"[SCORING] Order: {' → '.join(titles)}")

    emit(
        ProgressEvent(
            PROGRESS,
            f"Categories will be analyzed in this randomized order: {' → '.join(titles)}",
            {"stage": "scoring", "order": titles, "total": total},
        )
    )

    results: dict[str, CategoryScore] = {}

    async def _run(step: int, dimension: Dimension) -> None:
        emit(
            ProgressEvent(
                PROGRESS,
                f"Analyzing {dimension.title}... ({step}/{total})",
                {"stage": "scoring", "category": dimension.title, "step": step, "total": total},
            )
        )
        try:
            score = await score_dimension(dimension, context, registry=registry)
        except Exception as exc:  # noqa: BLE001
            print(f"[SCORING] ✗ {dimension.title}: {exc}")
            results[dimension.key] = CategoryScore.unavailable(dimension)
            emit(
                ProgressEvent(
                    CATEGORY_ERROR,
                    f"Could not analyze {dimension.title}",
                    {
                        "category": dimension.title,
                        "categoryKey": dimension.key,
                        "error": str(exc),
                        "step": step,
                        "total": total,
                    },
                )
            )
            return

        print(f"[SCORING] ✓ {dimension.title}: {score.score}/100")
        results[dimension.key] = score
        emit(
            ProgressEvent(
                CATEGORY_COMPLETE,
                f"{dimension.title} analyzed",
                {
                    "category": dimension.title,
                    "categoryKey": dimension.key,
                    "score": score.score,
                    "summary": score.summary,
                    "step": step,
                    "total": total,
                },
            )
        )

    await asyncio.gather(*(_run(step, d) for step, d in enumerate(order, start=1)))
    return results, titles


async def summarize(
    context: AnalysisContext,
    scores: Mapping[str, CategoryScore],
    *,
    registry: ModelRegistry,
) -> str:
    """Synthesize the executive summary; degrades to :data:`SUMMARY_UNAVAILABLE`."""
    print("[SUMMARY] Generating executive summary …")
    outcome = await chat_json(summary_messages(context, scores), registry=registry)
    reply = parse_response(outcome, ExecutiveSummaryResponse)
    if reply is None:
        print("[SUMMARY] ✗ No usable reply.")
        return SUMMARY_UNAVAILABLE
    return reply.executive_summary.strip()
