"""OpenRouter LLM client factory and the round-robin model pool used by the graph."""
from __future__ import annotations

import itertools
import time
from typing import Any, Literal

from searchgraph.config import settings
from searchgraph.services import logger as log_service
from searchgraph.services.deadlines import with_deadline

ResponseFormat = Literal["text", "json_object"]


def get_client() -> Any:
    """Get an OpenRouter client via the OpenAI-compatible SDK."""
    from openai import AsyncOpenAI

    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    return AsyncOpenAI(
        api_key=settings.openrouter_api_key,
        base_url=base_url,
    )


def get_model() -> str:
    return settings.default_model


_client: Any | None = None


def client() -> Any:
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client


class LLM:
    """One model behind the shared client, exposing a single `generate` call."""

    def __init__(
        self,
        model: str | None = None,
        *,
        openai_client: Any | None = None,
        timeout_seconds: float | None = None,
        max_tokens: int | None = None,
    ):
        self.model = model or get_model()
        self._client = openai_client
        self.timeout_seconds = (
            settings.llm_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self.max_tokens = max_tokens or settings.llm_max_tokens

    @staticmethod
    def _temperature_for_model(model: str) -> int:
        # Some OpenAI GPT-5-compatible gateways reject temperature=0.
        lowered = (model or "").lower()
        if "gpt-5" in lowered:
            return 1
        return 0

    async def generate(
        self,
        prompt: str,
        response_format: ResponseFormat = "text",
        *,
        caller: str = "search_graph",
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self._temperature_for_model(self.model),
        }
        if response_format == "json_object":
            kwargs["response_format"] = {"type": "json_object"}

        active_client = self._client or client()
        t0 = time.monotonic()
        try:
            response = await with_deadline(
                active_client.chat.completions.create(**kwargs),
                self.timeout_seconds,
                f"LLM call ({caller})",
            )
        except Exception as e:
            log_service.log_llm_call(
                model=self.model,
                caller=caller,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(e),
            )
            raise

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.model,
            caller=caller,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        text = getattr(choices[0].message, "content", None)
        return (text or "").strip()


class LLMPool:
    """Round-robin over the configured models."""

    def __init__(self, llms: list[LLM] | None = None):
        if llms is None:
            llms = [LLM(model) for model in settings.llm_model_list]
        if not llms:
            raise ValueError("LLMPool needs at least one LLM")
        self.llms = llms
        self._cycle = itertools.cycle(self.llms)

    def next(self) -> LLM:
        return next(self._cycle)
