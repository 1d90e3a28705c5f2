from __future__ import annotations

import httpx
from bs4 import BeautifulSoup

from searchgraph.tools import web_utils
from searchgraph.tools.jina_search import SearchResult

BING_SEARCH_URL = "https://www.bing.com/search"


def parse_results(html: str, max_results: int = 10) -> list[SearchResult]:
    """Parse organic results (`li.b_algo`) from a Bing results page."""
    soup = BeautifulSoup(html, "html.parser")
    results: list[SearchResult] = []
    for item in soup.select("li.b_algo"):
        anchor = item.select_one("h2 a")
        if anchor is None:
            continue
        url = (anchor.get("href") or "").strip()
        if not web_utils.is_valid_url(url):
            continue
        snippet = item.select_one(".b_caption p") or item.select_one("p")
        results.append(
            SearchResult(
                title=anchor.get_text(" ", strip=True),
                url=url,
                content=snippet.get_text(" ", strip=True) if snippet else "",
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
    """Execute a Bing web search by reading the HTML results page."""
    async with httpx.AsyncClient(
        timeout=30.0,
        follow_redirects=True,
        headers=web_utils.DEFAULT_HEADERS,
        **web_utils.proxy_kwargs(proxy),
    ) as client:
        response = await client.get(
            BING_SEARCH_URL,
            params={"q": query, "count": max(max_results, 10)},
        )
        response.raise_for_status()
        return parse_results(response.text, max_results)
