"""Model-fallback layer for every oracle (chat model) call.

Candidate models come from ``AI_MODEL`` — a comma-separated list whose entries
may be namespaced with a provider, e.g.::

    AI_MODEL="openai:gpt-4o,openai:gpt-4o-mini,ollama:llama3.1"

Each call walks the candidates in order, asks for JSON output, parses the
reply and returns on the first success.  Any failure (network, API error,
unparseable output) moves on to the next model.

A :class:`ModelRegistry` carries the process-wide memory of which model last
worked and which have failed.  It is passed in explicitly rather than kept as
module state so tests (and separate apps in one process) get their own copy.
Updates to it are advisory: a lost update only costs a redundant attempt.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from shopaudit.config import settings

DEFAULT_MODEL = "gpt-4o"
KNOWN_PROVIDERS = ("openai", "ollama")

SchemaT = TypeVar("SchemaT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Candidates & registry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelCandidate:
    provider: str
    name: str

    @property
    def id(self) -> str:
        return f"{self.provider}:{self.name}"


def parse_model_candidates(raw: str | None, default_provider: str | None = None) -> list[ModelCandidate]:
    """Parse a comma-separated model list into candidates.

    Entries without a known ``provider:`` prefix use *default_provider*
    (``settings.llm_provider`` when omitted).  An empty list yields the single
    default model.
    """
    provider_default = (default_provider or settings.llm_provider or "openai").lower()
    candidates: list[ModelCandidate] = []
    for part in (raw or "").split(","):
        entry = part.strip()
        if not entry:
            continue
        provider, sep, name = entry.partition(":")
        if sep and provider.strip().lower() in KNOWN_PROVIDERS and name.strip():
            candidate = ModelCandidate(provider.strip().lower(), name.strip())
        else:
            # "llama3.1:8b" style tags are model names, not providers
            candidate = ModelCandidate(provider_default, entry)
        if candidate not in candidates:
            candidates.append(candidate)

    if not candidates:
        candidates.append(ModelCandidate(provider_default, DEFAULT_MODEL))
    return candidates


class ModelRegistry:
    """Process-scoped "last known good / known bad" model memory."""

    def __init__(self, models: Sequence[ModelCandidate] | None = None) -> None:
        self._models: list[ModelCandidate] = list(models or parse_model_candidates(settings.ai_model))
        self.preferred: Optional[ModelCandidate] = None
        self.failed: set[ModelCandidate] = set()

    @classmethod
    def from_settings(cls) -> "ModelRegistry":
        return cls(parse_model_candidates(settings.ai_model))

    @property
    def models(self) -> list[ModelCandidate]:
        return list(self._models)

    def candidates(self) -> list[ModelCandidate]:
        """Return the models to try, in order, for the next call.

        The last model that succeeded goes first; models that have failed are
        skipped.  When every configured model is marked bad the full list is
        offered again rather than giving up for the rest of the process.
        """
        healthy = [m for m in self._models if m not in self.failed]
        if not healthy:
            healthy = list(self._models)
        if self.preferred is not None:
            return [self.preferred] + [m for m in healthy if m != self.preferred]
        return healthy

    def record_success(self, model: ModelCandidate) -> None:
        self.preferred = model
        self.failed.discard(model)

    def record_failure(self, model: ModelCandidate) -> None:
        self.failed.add(model)
        if self.preferred == model:
            self.preferred = None

    def reset(self) -> None:
        self.preferred = None
        self.failed.clear()


# ---------------------------------------------------------------------------
# Call result
# ---------------------------------------------------------------------------

@dataclass
class ChatResult:
    """Outcome of :func:`chat_json`.  ``result`` is ``None`` when every model failed."""

    result: Optional[dict[str, Any]] = None
    model_used: Optional[str] = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.result is not None


# ---------------------------------------------------------------------------
# LLM helper
# ---------------------------------------------------------------------------

def _get_llm(model: ModelCandidate, temperature: float) -> Any:
    """Return a LangChain chat model for *model* configured for JSON output."""
    if model.provider == "ollama":
        from langchain_ollama import ChatOllama

        return ChatOllama(
            model=model.name,
            base_url=settings.ollama_base_url,
            temperature=temperature,
            format="json",
        )

    from langchain_openai import ChatOpenAI

    llm = ChatOpenAI(
        model=model.name,
        temperature=temperature,
        api_key=settings.openai_api_key or None,
    )
    return llm.bind(response_format={"type": "json_object"})


def _to_lc_messages(messages: Sequence[dict[str, str]]) -> list[Any]:
    from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

    converted: list[Any] = []
    for message in messages:
        role = message.get("role", "user")
        content = message.get("content", "")
        if role == "system":
            converted.append(SystemMessage(content=content))
        elif role == "assistant":
            converted.append(AIMessage(content=content))
        else:
            converted.append(HumanMessage(content=content))
    return converted


def _parse_json(raw: str) -> dict[str, Any]:
    text = raw.strip()
    if text.startswith("```"):
        # Some local models wrap JSON in a markdown fence despite JSON mode.
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def chat_json(
    messages: Sequence[dict[str, str]],
    *,
    registry: ModelRegistry,
    temperature: float | None = None,
) -> ChatResult:
    """Send *messages* to the first model that returns parseable JSON.

    Args:
        messages: ``{"role": "system"|"user"|"assistant", "content": ...}``
            dicts in conversation order.
        registry: Model memory shared across calls in this process.
        temperature: Sampling temperature (``settings.oracle_temperature``
            when omitted).

    Returns:
        A :class:`ChatResult`.  Exhaustion is reported through
        ``ChatResult.ok`` being ``False``; model failures never raise.
    """
    temp = settings.oracle_temperature if temperature is None else temperature
    lc_messages = _to_lc_messages(messages)
    outcome = ChatResult()

    for model in registry.candidates():
        try:
            llm = _get_llm(model, temp)
            response = await llm.ainvoke(lc_messages)
            raw = response.content if hasattr(response, "content") else str(response)
            parsed = _parse_json(raw if isinstance(raw, str) else json.dumps(raw))
        except Exception as exc:  # noqa: BLE001
            print(f"[MODEL] {model.id} failed, trying next: {exc!r:.200}")
            registry.record_failure(model)
            outcome.errors.append(f"{model.id}: {exc}")
            continue

        registry.record_success(model)
        outcome.result = parsed
        outcome.model_used = model.id
        return outcome

    print(f"[MODEL] all {len(outcome.errors)} model(s) failed.")
    return outcome


def parse_response(outcome: ChatResult, schema: Type[SchemaT]) -> Optional[SchemaT]:
    """Validate an oracle reply against *schema*; ``None`` if absent or invalid."""
    if not outcome.ok:
        return None
    try:
        return schema.model_validate(outcome.result)
    except ValidationError as exc:
        print(f"[MODEL] {outcome.model_used} reply failed {schema.__name__} validation: {exc.error_count()} error(s)")
        return None
