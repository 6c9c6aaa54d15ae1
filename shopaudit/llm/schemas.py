"""Expected shapes of oracle replies.

Oracle output is untrusted input: every reply is validated against one of
these models before anything downstream reads it.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Reply(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RankedProduct(_Reply):
    url: str
    title: str = ""
    reason: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def _none_title(cls, value: object) -> object:
        return "" if value is None else value


class TopProductsResponse(_Reply):
    # Raw items; the ranker validates each against RankedProduct.
    top_products: List[Any] = Field(default_factory=list, alias="topProducts")


class CategoryScoreResponse(_Reply):
    score: int = Field(ge=1, le=100)
    summary: str = Field(min_length=1)

    @field_validator("score", mode="before")
    @classmethod
    def _round_float_scores(cls, value: object) -> object:
        # Models sometimes answer 72.0; anything non-numeric still fails.
        if isinstance(value, float):
            return round(value)
        return value


class PositioningResponse(_Reply):
    positioning: str = Field(min_length=1)


class ExecutiveSummaryResponse(_Reply):
    executive_summary: str = Field(min_length=1, alias="executiveSummary")
