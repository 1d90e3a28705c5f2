from __future__ import annotations

from dataclasses import dataclass

from searchgraph.config import settings
from searchgraph.services.deadlines import with_deadline
from searchgraph.tools import baidu_search, bing_search, jina_search
from searchgraph.tools.jina_search import SearchResult

SUPPORTED_ENGINES = ("bing", "baidu", "jina")


@dataclass
class SearchResponse:
    results: list[SearchResult]
    provider: str


def resolve_engine(platform: str | None, default: str | None = None) -> str:
    """Pick the query's pinned platform when supported, else the default engine."""
    candidate = (platform or "").lower().strip()
    if candidate in SUPPORTED_ENGINES:
        return candidate
    return (default or settings.search_engine).lower().strip()


async def search(
    query: str,
    *,
    engine: str | None = None,
    max_results: int = 10,
    proxy: str | None = None,
    timeout_seconds: float | None = None,
) -> SearchResponse:
    provider = (engine or settings.search_engine).lower().strip()
    proxy = settings.proxy if proxy is None else proxy
    timeout = settings.search_timeout_seconds if timeout_seconds is None else timeout_seconds

    if provider == "bing":
        call = bing_search.search(query, max_results=max_results, proxy=proxy)
    elif provider == "baidu":
        call = baidu_search.search(query, max_results=max_results, proxy=proxy)
    elif provider == "jina":
        call = jina_search.search(query, max_results=max_results, proxy=proxy)
    else:
        raise ValueError(f"Unsupported SEARCH_ENGINE: {provider}")

    results = await with_deadline(call, timeout, f"{provider} search")
    return SearchResponse(results=results, provider=provider)
