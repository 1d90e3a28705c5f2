from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class _Span:
    start: float
    end: float | None = None


class Timer:
    """Named stage timer. Times are monotonic milliseconds."""

    def __init__(self) -> None:
        self._spans: dict[str, _Span] = {}

    @staticmethod
    def _now_ms() -> float:
        return time.monotonic() * 1000

    def start(self, name: str) -> None:
        self._spans[name] = _Span(start=self._now_ms())

    def end(self, name: str) -> int | None:
        span = self._spans.get(name)
        if span is None:
            return None
        span.end = self._now_ms()
        return int(span.end - span.start)

    def duration_ms(self, name: str) -> int | None:
        span = self._spans.get(name)
        if span is None or span.end is None:
            return None
        return int(span.end - span.start)

    def get_metrics(self) -> dict[str, dict[str, Any]]:
        return {
            name: {
                "start": int(span.start),
                "end": int(span.end) if span.end is not None else None,
                "duration_ms": int(span.end - span.start) if span.end is not None else None,
            }
            for name, span in self._spans.items()
        }
