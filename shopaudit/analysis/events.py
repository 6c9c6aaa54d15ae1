"""Progress events streamed to the caller during an analysis run.

Event shapes (serialised flat, ``type`` + ``message`` + event-specific keys)::

    {"type": "start",             "message": "..."}
    {"type": "initial",           "message": "...", "collections": [...], "topProducts": [...], "stats": {...}}
    {"type": "products_fetched",  "message": "...", "count": 6}
    {"type": "progress",          "message": "...", "stage": "scoring", ...}
    {"type": "category_complete", "message": "...", "categoryKey": "...", "score": 72, "summary": "..."}
    {"type": "category_error",    "message": "...", "categoryKey": "...", "error": "..."}
    {"type": "complete",          "message": "...", "analysis": {...}, "topProducts": [...], ...}
    {"type": "error",             "message": "...", "error": "..."}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable

START = "start"
INITIAL = "initial"
PRODUCTS_FETCHED = "products_fetched"
PROGRESS = "progress"
CATEGORY_COMPLETE = "category_complete"
CATEGORY_ERROR = "category_error"
COMPLETE = "complete"
ERROR = "error"

EVENT_TYPES = (
    START, INITIAL, PRODUCTS_FETCHED, PROGRESS,
    CATEGORY_COMPLETE, CATEGORY_ERROR, COMPLETE, ERROR,
)
TERMINAL_TYPES = (COMPLETE, ERROR)
_DIMENSION_TYPES = (CATEGORY_COMPLETE, CATEGORY_ERROR)


@dataclass(frozen=True)
class ProgressEvent:
    type: str
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.type not in EVENT_TYPES:
            raise ValueError(f"unknown event type {self.type!r}")

    @classmethod
    def failure(cls, message: str) -> "ProgressEvent":
        return cls(ERROR, message, {"error": message})

    @property
    def terminal(self) -> bool:
        return self.type in TERMINAL_TYPES

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message, **self.data}

    def to_sse(self) -> str:
        """Encode as a single SSE frame (``data: ...\\n\\n``)."""
        return f"data: {json.dumps(self.to_dict())}\n\n"


Sink = Callable[[ProgressEvent], None]


class EventChannel:
    """Wraps a sink and enforces the stream's ordering rules.

    * Nothing is delivered after a ``complete`` or ``error`` event.
    * At most one ``category_complete``/``category_error`` per dimension.
    * Once :meth:`close` is called (e.g. the client went away) every further
      event is dropped.
    """

    def __init__(self, sink: Sink) -> None:
        self._sink = sink
        self._closed = False
        self._dimensions: set[str] = set()
        self.terminal_event: ProgressEvent | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def emit(self, event: ProgressEvent) -> bool:
        """Deliver *event*; return ``False`` if it was dropped."""
        if self._closed:
            return False
        if event.type in _DIMENSION_TYPES:
            key = event.data.get("categoryKey")
            if key in self._dimensions:
                return False
            self._dimensions.add(key)
        if event.terminal:
            self._closed = True
            self.terminal_event = event
        self._sink(event)
        return True

    __call__ = emit
