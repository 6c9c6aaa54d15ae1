"""ShopAudit CLI — entry-point for crawling and analysis from the terminal.

Usage:
    python cli/main.py --help

Commands:
    links        → classified homepage links
    collections  → collection pages and their product links
    analyze      → full streamed analysis
    serve        → run the HTTP API
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from shopaudit.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import contextlib
import json
import random
from typing import Any, Optional

import typer

from shopaudit.analysis.events import (
    CATEGORY_COMPLETE,
    CATEGORY_ERROR,
    COMPLETE,
    ERROR,
    ProgressEvent,
)
from shopaudit.config import settings
from shopaudit.llm.fallback import ModelRegistry
from shopaudit.scraper.fetcher import FetchError

app = typer.Typer(
    name="shopaudit",
    help="ShopAudit CLI — e-commerce product content analysis.",
    no_args_is_help=True,
)


def _normalise(url: str) -> str:
    url = url.strip()
    if not url.lower().startswith(("http://", "https://")):
        url = f"https://{url}"
    return url


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _render_event(event: ProgressEvent) -> None:
    if event.type == CATEGORY_COMPLETE:
        typer.echo(f"✅ {event.data.get('category')}: {event.data.get('score')}/100")
        typer.echo(f"   {event.data.get('summary')}")
    elif event.type == CATEGORY_ERROR:
        typer.echo(f"⚠️  {event.data.get('category')}: {event.data.get('error')}")
    elif event.type == ERROR:
        typer.echo(f"❌ {event.message}", err=True)
    elif event.type == COMPLETE:
        _render_report(event.data)
    else:
        typer.echo(f"[{event.type}] {event.message}")


def _render_report(payload: dict[str, Any]) -> None:
    analysis = payload["analysis"]
    stats = payload["stats"]
    typer.echo("\n" + "=" * 72)
    typer.echo(f"Positioning : {analysis['inferredBrandPositioning']}")
    typer.echo("")
    for key, label in (
        ("brandAlignment", "Brand alignment"),
        ("conversionEffectiveness", "Conversion effectiveness"),
        ("seoAiBestPractices", "SEO / AI discoverability"),
    ):
        score = analysis[key]
        shown = f"{score['score']}/100" if score["ok"] else "not scored"
        typer.echo(f"  {label:<26}: {shown}")
    typer.echo("")
    typer.echo(analysis["executiveSummary"])
    typer.echo("=" * 72)
    typer.echo(
        f"  Collections : {stats['collectionsCount']}\n"
        f"  Pages       : {stats['productsFetchedCount']}"
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command("links")
def links(url: str = typer.Argument(..., help="Store homepage URL.")) -> None:
    """Fetch the homepage and list its links by category / product / other."""
    from shopaudit.scraper.classifier import summarize_links
    from shopaudit.scraper.extractor import extract_links
    from shopaudit.scraper.fetcher import fetch_html

    target = _normalise(url)
    try:
        html = asyncio.run(fetch_html(target))
    except FetchError as exc:
        typer.echo(f"[links] {exc.reason}", err=True)
        raise typer.Exit(1)

    report = summarize_links(extract_links(html, target, require_text=True))
    stats = report["stats"]
    typer.echo(
        f"[links] {stats['total']} link(s): {stats['categories']} category, "
        f"{stats['products']} product, {stats['other']} other"
    )
    for item in report["links"]:
        typer.echo(f"  [{item['category']:<8}] {item['text'][:40]:<40}  {item['url']}")


@app.command("collections")
def collections(url: str = typer.Argument(..., help="Store homepage URL.")) -> None:
    """List the first collection pages and the product links on each."""
    from shopaudit.analysis.selector import discover_candidates
    from shopaudit.scraper.fetcher import build_client

    target = _normalise(url)

    async def _discover():
        async with build_client() as client:
            return await discover_candidates(
                target,
                client=client,
                per_collection_limit=settings.collection_product_limit,
                require_text=True,
            )

    try:
        discovery = asyncio.run(_discover())
    except FetchError as exc:
        typer.echo(f"[collections] {exc.reason}", err=True)
        raise typer.Exit(1)

    if not discovery.collections:
        typer.echo("[collections] No collection pages found.")
        return
    for group in discovery.collections:
        typer.echo(f"{group.collection.text or group.collection.url}  ({group.collection.url})")
        for product in group.products:
            typer.echo(f"  - {product.text or '(no label)'}  {product.url}")


@app.command("analyze")
def analyze(
    url: str = typer.Argument(..., help="Store homepage URL."),
    as_json: bool = typer.Option(False, "--json", help="Print the final payload as JSON."),
    seed: Optional[int] = typer.Option(None, help="Seed for the dimension shuffle."),
) -> None:
    """Run the full analysis, printing progress as it streams in."""
    from shopaudit.analysis.orchestrator import run_analysis

    target = _normalise(url)
    registry = ModelRegistry.from_settings()
    rng = random.Random(seed) if seed is not None else None
    events: list[ProgressEvent] = []

    def _sink(event: ProgressEvent) -> None:
        events.append(event)
        if not as_json:
            _render_event(event)

    if as_json:
        # Keep stdout clean for the JSON document; stage logs go to stderr.
        with contextlib.redirect_stdout(sys.stderr):
            payload = asyncio.run(run_analysis(target, _sink, registry=registry, rng=rng))
    else:
        payload = asyncio.run(run_analysis(target, _sink, registry=registry, rng=rng))

    if payload is None:
        if as_json:
            message = events[-1].message if events else "Analysis failed"
            typer.echo(json.dumps({"error": message}, indent=2))
        raise typer.Exit(1)
    if as_json:
        typer.echo(json.dumps(payload, indent=2))


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("shopaudit.api.app:app", host=host, port=port)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
