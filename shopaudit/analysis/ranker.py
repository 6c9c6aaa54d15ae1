"""Oracle-assisted product ranking with a membership check on the reply.

The oracle is asked to pick from the candidate list only, but its answer is
never trusted: any URL that is not byte-identical to a candidate is dropped.
When the oracle is unavailable or nothing survives validation, the first
candidates in discovery order are used instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from shopaudit.analysis.models import SelectedProduct
from shopaudit.analysis.prompts import ranking_messages
from shopaudit.config import settings
from shopaudit.llm.fallback import ModelRegistry, chat_json, parse_response
from shopaudit.llm.schemas import RankedProduct, TopProductsResponse
from shopaudit.scraper.models import Link

FALLBACK_REASON = "Selected from discovered products (automatic fallback)"


@dataclass
class Ranking:
    products: List[SelectedProduct] = field(default_factory=list)
    used_fallback: bool = False
    model_used: Optional[str] = None


def fallback_selection(candidates: Sequence[Link], limit: int) -> List[SelectedProduct]:
    """First *limit* candidates, in discovery order."""
    return [
        SelectedProduct(url=link.url, title=link.text or link.url, reason=FALLBACK_REASON)
        for link in candidates[:limit]
    ]


def _ranked_item(raw: Any) -> Optional[RankedProduct]:
    """Coerce one reply item; a bare string is taken as the URL."""
    if isinstance(raw, str):
        raw = {"url": raw}
    try:
        return RankedProduct.model_validate(raw)
    except ValidationError:
        print(f"[RANKING] Discarding malformed item: {raw!r}")
        return None


def validate_selection(
    items: Iterable[Any],
    allowed_urls: set[str],
    limit: int,
) -> List[SelectedProduct]:
    """Keep oracle picks whose URL is an exact candidate, once each, up to *limit*.

    Items may be dicts, bare URL strings or :class:`RankedProduct`; malformed
    ones are skipped individually.
    """
    selected: List[SelectedProduct] = []
    seen: set[str] = set()
    for raw in items:
        if len(selected) >= limit:
            break
        item = _ranked_item(raw)
        if item is None:
            continue
        if item.url not in allowed_urls:
            print(f"[RANKING] Discarding URL not in candidate set: {item.url!r}")
            continue
        if item.url in seen:
            continue
        seen.add(item.url)
        selected.append(SelectedProduct(url=item.url, title=item.title or item.url, reason=item.reason))
    return selected


async def rank_products(
    candidates: Sequence[Link],
    *,
    registry: ModelRegistry,
    limit: Optional[int] = None,
    max_candidates: Optional[int] = None,
) -> Ranking:
    """Ask the oracle for the most representative products among *candidates*.

    Args:
        candidates: Discovered product links; must not be empty.
        registry: Model memory for the fallback layer.
        limit: Maximum products to return (``settings.max_selected_products``).
        max_candidates: How many candidates to show the oracle
            (``settings.max_candidates``).

    Returns:
        A :class:`Ranking` whose product URLs are all members of the capped
        candidate list, and which is non-empty.

    Raises:
        ValueError: If *candidates* is empty.
    """
    if not candidates:
        raise ValueError("rank_products needs at least one candidate")

    if limit is None:
        limit = settings.max_selected_products
    if max_candidates is None:
        max_candidates = settings.max_candidates
    shown = list(candidates[:max_candidates])
    allowed = {link.url for link in shown}

    print(f"[RANKING] Asking oracle to pick up to {limit} of {len(shown)} candidate(s) …")
    outcome = await chat_json(
        ranking_messages([link.url for link in shown], limit),
        registry=registry,
        temperature=0.2,
    )
    reply = parse_response(outcome, TopProductsResponse)
    if reply is None:
        print("[RANKING] No usable oracle reply; falling back to discovery order.")
        return Ranking(products=fallback_selection(shown, limit), used_fallback=True)

    selected = validate_selection(reply.top_products, allowed, limit)
    if not selected:
        print("[RANKING] Oracle picks did not survive validation; falling back to discovery order.")
        return Ranking(
            products=fallback_selection(shown, limit),
            used_fallback=True,
            model_used=outcome.model_used,
        )

    print(f"[RANKING] ✓ {len(selected)} product(s) selected by {outcome.model_used}.")
    return Ranking(products=selected, model_used=outcome.model_used)
