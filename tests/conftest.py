from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import pytest

from searchgraph.agents.searcher import SearchRunResult
from searchgraph.models.graph import Page, QuestionAnswer
from searchgraph.models.schemas import Query
from searchgraph.services.diagnostics import DiagnosticsWriter

Responder = Callable[[str, str], Any]


class FakeLLM:
    """Scripted LLM: `responder(prompt, caller)` returns text or an exception."""

    def __init__(self, responder: Responder):
        self.responder = responder
        self.calls: list[dict[str, str]] = []

    async def generate(self, prompt: str, response_format: str = "text", *, caller: str = "search_graph") -> str:
        self.calls.append({"prompt": prompt, "format": response_format, "caller": caller})
        result = self.responder(prompt, caller)
        if isinstance(result, BaseException):
            raise result
        return result

    def calls_for(self, caller: str) -> list[dict[str, str]]:
        return [call for call in self.calls if call["caller"] == caller]


class FakePool:
    def __init__(self, llm: FakeLLM):
        self.llm = llm

    def next(self) -> FakeLLM:
        return self.llm


class FakeQueryBuilder:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def build(
        self,
        question: str,
        hint: str | None = None,
        context: list[QuestionAnswer] | None = None,
    ) -> Query:
        self.calls.append({"question": question, "hint": hint, "context": list(context or [])})
        return Query(text=question)


def usable_result(text: str, answer: str | None = None) -> SearchRunResult:
    return SearchRunResult(
        content=text,
        pages=[Page(id=0, title=f"About {text}", url="https://example.com/a", content="page body")],
        answer=answer or f"answer to {text}",
    )


class FakeSearcher:
    """Answers every query unless `script` maps its text to a result or exception.

    A script value may also be a list, consumed one entry per call.
    """

    def __init__(self, script: dict[str, Any] | None = None, *, delay: float = 0.0):
        self.script = script or {}
        self.delay = delay
        self.calls: list[dict[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def __call__(self, _engine: str) -> "FakeSearcher":
        return self

    async def run(self, content: str, parent_responses: list[QuestionAnswer]) -> SearchRunResult:
        self.calls.append({"content": content, "context": list(parent_responses)})
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = self.script.get(content)
            if isinstance(outcome, list):
                outcome = outcome.pop(0) if outcome else None
            if outcome is None:
                return usable_result(content)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        finally:
            self.in_flight -= 1

    def searched(self, fragment: str) -> bool:
        return any(fragment in call["content"] for call in self.calls)


def decomposition(*nodes: dict[str, Any]) -> str:
    return json.dumps({"nodes": list(nodes)})


def leaf(content: str, *children: dict[str, Any]) -> dict[str, Any]:
    return {"content": content, "children": list(children)}


@pytest.fixture
def diagnostics(tmp_path) -> DiagnosticsWriter:
    return DiagnosticsWriter(tmp_path / "logs")
