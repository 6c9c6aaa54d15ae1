"""Oracle access: model fallback and reply schemas."""

from shopaudit.llm.fallback import (
    ChatResult,
    ModelCandidate,
    ModelRegistry,
    chat_json,
    parse_model_candidates,
    parse_response,
)

__all__ = [
    "ChatResult",
    "ModelCandidate",
    "ModelRegistry",
    "chat_json",
    "parse_model_candidates",
    "parse_response",
]
