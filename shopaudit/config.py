"""ShopAudit settings.

Every knob is a field on :class:`Settings` with an environment-variable
override.  A `.env` file next to the `shopaudit/` package is read on import;
variables already set in the process environment win.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# .env lives in the repository root, beside pyproject.toml
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


_BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Oracle (chat model)
    # ------------------------------------------------------------------
    # Comma-separated candidates, optionally namespaced: "openai:gpt-4o,gpt-4o-mini"
    ai_model: str = field(default_factory=lambda: os.environ.get("AI_MODEL", ""))
    llm_provider: str = field(
        default_factory=lambda: os.environ.get("LLM_PROVIDER", "openai")
    )
    openai_api_key: str = field(
        default_factory=lambda: os.environ.get("OPENAI_API_KEY", "")
    )
    ollama_base_url: str = field(
        default_factory=lambda: os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
    )
    oracle_temperature: float = field(
        default_factory=lambda: float(os.environ.get("ORACLE_TEMPERATURE", "0.7"))
    )

    # ------------------------------------------------------------------
    # Fetcher
    # ------------------------------------------------------------------
    user_agent: str = field(
        default_factory=lambda: os.environ.get("SCRAPER_USER_AGENT", _BROWSER_UA)
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    # Homepage fetch only: "is the site answering at all".
    site_probe_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SITE_PROBE_TIMEOUT", "5.0"))
    )
    fetch_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("FETCH_CONCURRENCY", "5"))
    )
    rate_limit_delay: float = field(
        default_factory=lambda: float(os.environ.get("RATE_LIMIT_DELAY", "1.0"))
    )

    # ------------------------------------------------------------------
    # Discovery / selection
    # ------------------------------------------------------------------
    max_collections: int = field(
        default_factory=lambda: int(os.environ.get("MAX_COLLECTIONS", "3"))
    )
    max_candidates: int = field(
        default_factory=lambda: int(os.environ.get("MAX_CANDIDATES", "100"))
    )
    max_selected_products: int = field(
        default_factory=lambda: int(os.environ.get("MAX_SELECTED_PRODUCTS", "10"))
    )
    collection_product_limit: int = field(
        default_factory=lambda: int(os.environ.get("COLLECTION_PRODUCT_LIMIT", "20"))
    )

    # ------------------------------------------------------------------
    # Content collection / analysis
    # ------------------------------------------------------------------
    # "parallel" favours latency, "serial" sleeps rate_limit_delay between pages.
    collector_mode: str = field(
        default_factory=lambda: os.environ.get("COLLECTOR_MODE", "parallel")
    )
    # "html" keeps the raw markup, "text" runs readability extraction first.
    content_mode: str = field(
        default_factory=lambda: os.environ.get("CONTENT_MODE", "html")
    )
    analysis_timeout: float = field(
        default_factory=lambda: float(os.environ.get("ANALYSIS_TIMEOUT", "120.0"))
    )

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------
    api_cors_origins: list[str] = field(
        default_factory=lambda: [
            o.strip()
            for o in os.environ.get("API_CORS_ORIGINS", "*").split(",")
            if o.strip()
        ]
    )


# Shared instance:
#   from shopaudit.config import settings
settings = Settings()
