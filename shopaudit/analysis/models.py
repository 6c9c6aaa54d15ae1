"""Result types produced by the analysis stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class Dimension:
    """One of the fixed scoring axes."""

    key: str
    title: str
    description: str


DIMENSIONS: tuple[Dimension, ...] = (
    Dimension(
        key="brandAlignment",
        title="Brand Alignment",
        description=(
            "How consistently does content across ALL digital touchpoints reflect and "
            "reinforce the core brand positioning? Consider website content, social media "
            "presence, customer reviews, press coverage, and external perception alignment."
        ),
    ),
    Dimension(
        key="conversionEffectiveness",
        title="Conversion Effectiveness",
        description=(
            "How compellingly do digital touchpoints drive urgency and action? Evaluate "
            "website conversion elements, social proof from reviews, brand reputation, and "
            "overall market positioning for conversion."
        ),
    ),
    Dimension(
        key="seoAiBestPractices",
        title="SEO and AI Best Practices",
        description=(
            "How well are digital assets optimized for both traditional search engines AND "
            "discovery by AI systems? Evaluate traditional SEO plus how easily AI assistants "
            "can discover, understand, and feature these products when users ask for "
            "recommendations in generative chat sessions."
        ),
    ),
)


@dataclass(frozen=True)
class CategoryScore:
    """Score for one dimension.

    ``score`` is 1–100 when ``ok``; ``0`` with ``ok=False`` means the dimension
    could not be scored at all.
    """

    score: int
    summary: str
    ok: bool = True

    @classmethod
    def unavailable(cls, dimension: Dimension) -> "CategoryScore":
        return cls(score=0, summary=f"Unable to analyze {dimension.title}", ok=False)

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "summary": self.summary, "ok": self.ok}


@dataclass(frozen=True)
class ProblematicContent:
    content: str
    issue: str
    location: str


@dataclass
class ConsolidatedAnalysis:
    executive_summary: str
    inferred_brand_positioning: str
    brand_alignment: CategoryScore
    conversion_effectiveness: CategoryScore
    seo_ai_best_practices: CategoryScore
    # Reserved; nothing populates it yet.
    problematic_content: List[ProblematicContent] = field(default_factory=list)
    dimension_order: List[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "executiveSummary": self.executive_summary,
            "inferredBrandPositioning": self.inferred_brand_positioning,
            "brandAlignment": self.brand_alignment.to_dict(),
            "conversionEffectiveness": self.conversion_effectiveness.to_dict(),
            "seoAiBestPractices": self.seo_ai_best_practices.to_dict(),
            "problematicContent": [
                {"content": p.content, "issue": p.issue, "location": p.location}
                for p in self.problematic_content
            ],
            "dimensionOrder": list(self.dimension_order),
        }


@dataclass
class SelectedProduct:
    """A product page chosen for analysis."""

    url: str
    title: str
    reason: Optional[str] = None
    image: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "title": self.title, "reason": self.reason, "image": self.image}
