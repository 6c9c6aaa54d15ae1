"""Prompt construction and content budgeting for oracle calls.

The prompt wording is opaque to the pipeline; what matters here is that every
prompt asks for a JSON object with the keys the reply schemas expect, and that
page content is truncated to a fair share of a fixed character budget.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from shopaudit.analysis.models import CategoryScore, Dimension, DIMENSIONS
from shopaudit.scraper.models import DigitalSource, PageContent

PAGE_BUDGET = 20000
PAGE_FLOOR = 2000
SOURCE_BUDGET = 8000
SOURCE_FLOOR = 1000

Messages = list[dict[str, str]]


def per_item_budget(total: int, floor: int, count: int) -> int:
    """Characters allowed per item when *total* is shared by *count* items."""
    return max(floor, total // max(1, count))


def format_pages(pages: Sequence[PageContent]) -> str:
    limit = per_item_budget(PAGE_BUDGET, PAGE_FLOOR, len(pages))
    return "\n\n---\n\n".join(
        f"{page.page_type.upper()} PAGE - {page.url}:\n{page.content[:limit]}" for page in pages
    )


def format_sources(sources: Sequence[DigitalSource]) -> str:
    limit = per_item_budget(SOURCE_BUDGET, SOURCE_FLOOR, len(sources))
    return "\n\n---\n\n".join(
        f"{source.type.upper()} - {source.source}:\n{source.content[:limit]}" for source in sources
    )


@dataclass(frozen=True)
class AnalysisContext:
    """Budgeted content shared by the positioning, scoring and summary prompts."""

    website_content: str
    digital_content: str
    page_count: int
    source_count: int
    positioning: str = ""

    @property
    def total_sources(self) -> int:
        return self.page_count + self.source_count

    @classmethod
    def build(
        cls,
        pages: Sequence[PageContent],
        sources: Sequence[DigitalSource],
        positioning: str = "",
    ) -> "AnalysisContext":
        return cls(
            website_content=format_pages(pages),
            digital_content=format_sources(sources),
            page_count=len(pages),
            source_count=len(sources),
            positioning=positioning,
        )


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

def ranking_messages(urls: Sequence[str], limit: int) -> Messages:
    url_list = "\n".join(urls)
    prompt = (
        "CRITICAL: You must ONLY select URLs from the exact list provided below. "
        "Do NOT generate, create, or invent any URLs.\n\n"
        "You are given a list of product page URLs from an e-commerce website. "
        f"Pick UP TO {limit} products that seem most popular/important based on the "
        "URL structure and patterns.\n\n"
        "REQUIREMENTS:\n"
        "- ONLY use URLs from the provided list, copied character for character\n"
        "- Do NOT create example.com or any fictional URLs\n"
        "- If no suitable URLs exist in the list, return an empty array\n"
        '- Output JSON with key "topProducts" containing an array of objects with '
        '"url", "title", "reason"\n\n'
        f"PROVIDED URLs:\n{url_list}"
    )
    return [
        {
            "role": "system",
            "content": (
                "You are an expert e-commerce analyst. You must NEVER generate fictional "
                "URLs. Only use URLs provided in the prompt."
            ),
        },
        {"role": "user", "content": prompt},
    ]


# ---------------------------------------------------------------------------
# Positioning
# ---------------------------------------------------------------------------

def positioning_messages(context: AnalysisContext) -> Messages:
    external = ""
    if context.source_count:
        external = (
            f"\nEXTERNAL DIGITAL SOURCES:\n{context.digital_content}\n\n"
            "Consider both internal messaging (website) and external perception. Look for "
            "consistency or gaps between how the brand presents itself and how it is "
            "perceived.\n"
        )
    prompt = (
        "You are analyzing a brand's positioning based on digital content from "
        f"{context.total_sources} sources ({context.page_count} website pages + "
        f"{context.source_count} external digital sources).\n\n"
        f"WEBSITE CONTENT:\n{context.website_content}\n{external}\n"
        "Provide a clear, concise brand positioning statement (2-4 sentences) that "
        "captures:\n"
        "1. WHO they serve (target audience)\n"
        "2. WHAT they offer (category/products)\n"
        "3. HOW they're different (unique value proposition)\n"
        "4. WHY customers should choose them (key benefits)\n\n"
        'Return JSON: {"positioning": "2-4 sentence positioning statement"}'
    )
    return [
        {
            "role": "system",
            "content": "You are an expert at analyzing brand positioning from digital content.",
        },
        {"role": "user", "content": prompt},
    ]


# ---------------------------------------------------------------------------
# Per-dimension scoring
# ---------------------------------------------------------------------------

def dimension_messages(dimension: Dimension, context: AnalysisContext) -> Messages:
    external = (
        f"\nEXTERNAL DIGITAL SOURCES:\n{context.digital_content}\n" if context.digital_content else ""
    )
    prompt = (
        f"You are analyzing an e-commerce business for {dimension.title}. The inferred "
        f'brand positioning is: "{context.positioning}"\n\n'
        f"FOCUS EXCLUSIVELY ON: {dimension.description}\n\n"
        f"Analyze the following content from {context.total_sources} digital sources "
        f"({context.page_count} website pages + {context.source_count} external sources) "
        f"and provide ONLY a score (1-100) and summary (1-3 sentences) for {dimension.title}:\n\n"
        f"WEBSITE CONTENT:\n{context.website_content}\n{external}\n"
        "CRITICAL INSTRUCTIONS:\n"
        f"- Focus ONLY on {dimension.title}; ignore other aspects\n"
        "- Score based solely on evidence for this specific category\n"
        "- Provide specific examples from the content to justify your score\n\n"
        "Return your analysis in this JSON format:\n"
        '{"score": integer 1-100, '
        f'"summary": "1-3 sentences with specific evidence for the {dimension.title} score"}}'
    )
    return [
        {
            "role": "system",
            "content": (
                f"You are an expert e-commerce analyst specializing in {dimension.title}. "
                "Provide objective, evidence-based scoring with specific examples from the content."
            ),
        },
        {"role": "user", "content": prompt},
    ]


# ---------------------------------------------------------------------------
# Executive summary
# ---------------------------------------------------------------------------

def summary_messages(context: AnalysisContext, scores: Mapping[str, CategoryScore]) -> Messages:
    lines = []
    for dimension in DIMENSIONS:
        score = scores.get(dimension.key)
        if score is None or not score.ok:
            lines.append(f"- {dimension.title}: not scored")
        else:
            lines.append(f"- {dimension.title}: {score.score}/100 - {score.summary}")
    results = "\n".join(lines)
    prompt = (
        "Based on the following analysis results, provide a comprehensive executive summary "
        "(3-5 sentences) of the brand's overall digital performance, key strengths, main "
        "areas for improvement, and strategic recommendations:\n\n"
        f'Brand Positioning: "{context.positioning}"\n\n'
        f"Analysis Results:\n{results}\n\n"
        f"Sources analyzed: {context.total_sources} ({context.page_count} website pages + "
        f"{context.source_count} external sources)\n\n"
        'Return JSON: {"executiveSummary": "3-5 sentences with strategic overview and recommendations"}'
    )
    return [
        {
            "role": "system",
            "content": (
                "You are an expert e-commerce strategist. Provide a high-level executive "
                "summary with actionable strategic recommendations."
            ),
        },
        {"role": "user", "content": prompt},
    ]
