from __future__ import annotations

from loguru import logger

from searchgraph.llm_client import LLMPool
from searchgraph.models.graph import QuestionAnswer
from searchgraph.models.schemas import Query, extract_json_object
from searchgraph.services.prompt_store import render_prompt
from searchgraph.tools.search_provider import SUPPORTED_ENGINES


class QueryBuilder:
    """Turns a natural-language sub-question into a structured search query."""

    def __init__(self, llm_pool: LLMPool):
        self.llm_pool = llm_pool

    def _build_prompt(
        self,
        question: str,
        hint: str | None,
        context: list[QuestionAnswer] | None,
    ) -> str:
        context_text = "\n---\n".join(
            f"Question: {qa.content}\nAnswer: {qa.answer}" for qa in context or []
        )
        return render_prompt(
            "query_builder.build",
            platforms=", ".join(SUPPORTED_ENGINES),
            hint=f"- {hint.strip()}" if hint and hint.strip() else "",
            context=context_text or "(none)",
            question=question,
        )

    async def build(
        self,
        question: str,
        hint: str | None = None,
        context: list[QuestionAnswer] | None = None,
    ) -> Query:
        raw = await self.llm_pool.next().generate(
            self._build_prompt(question, hint, context),
            "json_object",
            caller="query_builder",
        )
        payload = extract_json_object(raw)
        text = payload.get("text")
        if not isinstance(text, str) or not text.strip():
            logger.warning(f"[QueryBuilder] Unusable query response, searching verbatim: {raw[:200]!r}")
            return Query(text=question.strip())
        return Query(
            text=" ".join(text.split()),
            platform=payload.get("platform"),
            commands=payload.get("commands") or [],
        )
