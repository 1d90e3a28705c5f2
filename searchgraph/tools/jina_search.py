from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from searchgraph.config import settings
from searchgraph.tools import web_utils

JINA_SEARCH_URL = "https://s.jina.ai/"

_FIELD_LINE = re.compile(r"^\[(\d+)\]\s+(Title|URL Source|Description):\s*(.*)$")


@dataclass
class SearchResult:
    """Normalized search result shared by every engine."""
    title: str
    url: str
    content: str = ""


def parse_results(text: str, max_results: int = 10) -> list[SearchResult]:
    """Parse the plain-text Jina search response.

    Format:
    [1] Title: ...
    [1] URL Source: ...
    [1] Description: ...
    """
    blocks: dict[int, dict[str, str]] = {}
    order: list[int] = []
    last: tuple[int, str] | None = None

    for line in text.splitlines():
        match = _FIELD_LINE.match(line.strip())
        if match:
            index, name, value = int(match.group(1)), match.group(2), match.group(3).strip()
            if index not in blocks:
                blocks[index] = {}
                order.append(index)
            blocks[index][name] = value
            last = (index, name)
        elif last and line.strip():
            # Descriptions may wrap onto following lines.
            index, name = last
            blocks[index][name] = f"{blocks[index][name]} {line.strip()}".strip()

    results: list[SearchResult] = []
    for index in order:
        block = blocks[index]
        results.append(
            SearchResult(
                title=block.get("Title", ""),
                url=block.get("URL Source", ""),
                content=block.get("Description", ""),
            )
        )
        if len(results) >= max_results:
            break
    return results


async def search(
    query: str,
    *,
    max_results: int = 10,
    proxy: str | None = None,
) -> list[SearchResult]:
    """Execute a web search using the Jina AI search API.

    API: GET https://s.jina.ai/?q=<query>
    Headers:
        - Authorization: Bearer <api_key>
        - X-Respond-With: no-content
    """
    api_key = settings.jina_api_key
    if not api_key:
        raise ValueError("JINA_API_KEY not configured")

    url = f"{JINA_SEARCH_URL}?q={quote(query, safe='')}"

    async with httpx.AsyncClient(**web_utils.proxy_kwargs(proxy)) as client:
        response = await client.get(
            url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "X-Respond-With": "no-content",
            },
            timeout=30.0,
        )
        response.raise_for_status()
        return parse_results(response.text, max_results)
