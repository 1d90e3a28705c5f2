from __future__ import annotations

import httpx
from bs4 import BeautifulSoup

from searchgraph.tools import web_utils
from searchgraph.tools.jina_search import SearchResult

BAIDU_SEARCH_URL = "https://www.baidu.com/s"


def parse_results(html: str, max_results: int = 10) -> list[SearchResult]:
    """Parse organic results from a Baidu results page.

    Baidu links point at its own redirector (`baidu.com/link?url=...`); they
    resolve to the target page when fetched with redirects enabled.
    """
    soup = BeautifulSoup(html, "html.parser")
    results: list[SearchResult] = []
    for item in soup.select("div.result, div.result-op"):
        anchor = item.select_one("h3 a")
        if anchor is None:
            continue
        url = (item.get("mu") or anchor.get("href") or "").strip()
        if not web_utils.is_valid_url(url):
            continue
        snippet = item.select_one(".c-abstract") or item.select_one("span.content-right_8Zs40")
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
    """Execute a Baidu web search by reading the HTML results page."""
    async with httpx.AsyncClient(
        timeout=30.0,
        follow_redirects=True,
        headers=web_utils.DEFAULT_HEADERS,
        **web_utils.proxy_kwargs(proxy),
    ) as client:
        response = await client.get(
            BAIDU_SEARCH_URL,
            params={"wd": query, "rn": max(max_results, 10)},
        )
        response.raise_for_status()
        return parse_results(response.text, max_results)
