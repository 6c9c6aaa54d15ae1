"""Analysis endpoints.

Routes
------
GET  /analyze/stream?url=...   Server-Sent Events, one ``data:`` frame per ProgressEvent
POST /analyze                  Body: {"url": "..."} → final payload or {"error": ...}

SSE event format
----------------
Each event is a JSON-encoded object on the ``data:`` line::

    data: {"type": "category_complete", "categoryKey": "brandAlignment", "score": 72, ...}

    data: {"type": "complete", "analysis": {...}, "topProducts": [...], "stats": {...}}

    data: {"type": "error", "message": "...", "error": "..."}
"""

from __future__ import annotations

from contextlib import aclosing
from typing import Any, AsyncIterator

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from shopaudit.analysis.orchestrator import (
    NO_PAGES_MESSAGE,
    NO_PRODUCTS_MESSAGE,
    analyze_site,
    stream_analysis,
)
from shopaudit.api.deps import get_http, get_registry, normalise_url
from shopaudit.llm.fallback import ModelRegistry

router = APIRouter()

# The site answered but gave us nothing to analyze.
_UNPROCESSABLE = {NO_PRODUCTS_MESSAGE, NO_PAGES_MESSAGE}


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class AnalyzeRequest(BaseModel):
    url: str


# ---------------------------------------------------------------------------
# Async SSE generator
# ---------------------------------------------------------------------------

async def _analysis_sse_generator(
    url: str,
    registry: ModelRegistry,
    client: httpx.AsyncClient,
) -> AsyncIterator[str]:
    """Yield SSE-formatted strings for the duration of an analysis run.

    When the client disconnects the response generator is closed, which
    closes the event stream and cancels the run.
    """
    async with aclosing(stream_analysis(url, registry=registry, client=client)) as events:
        async for event in events:
            yield event.to_sse()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("/stream")
async def analyze_stream(
    url: str = Query(..., description="Store homepage URL."),
    registry: ModelRegistry = Depends(get_registry),
    client: httpx.AsyncClient = Depends(get_http),
) -> StreamingResponse:
    """Run the analysis and stream progress as SSE.

    The stream always ends with exactly one ``complete`` or ``error`` event.
    """
    target = normalise_url(url)
    return StreamingResponse(
        _analysis_sse_generator(target, registry, client),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",   # disable nginx proxy buffering
        },
    )


@router.post("")
async def analyze(
    body: AnalyzeRequest,
    registry: ModelRegistry = Depends(get_registry),
    client: httpx.AsyncClient = Depends(get_http),
) -> Any:
    """Run the analysis and return the complete result in one response.

    Failures return ``{"error": "..."}``: status 422 when the site had no
    analyzable products, 502 for every other failure.
    """
    result = await analyze_site(normalise_url(body.url), registry=registry, client=client)
    if "error" in result:
        status = 422 if result["error"] in _UNPROCESSABLE else 502
        return JSONResponse(status_code=status, content=result)
    return result
