from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from searchgraph.services.deadlines import DeadlineExceededError
from searchgraph.tools import baidu_search, bing_search, jina_search, search_provider
from searchgraph.tools.jina_search import SearchResult

BING_HTML = """
<html><body><ol id="b_results">
  <li class="b_algo">
    <h2><a href="https://en.wikipedia.org/wiki/Paris">Paris - Wikipedia</a></h2>
    <div class="b_caption"><p>Paris is the capital of France.</p></div>
  </li>
  <li class="b_ad"><h2><a href="https://ads.example.com">Ad</a></h2></li>
  <li class="b_algo">
    <h2><a href="/relative">Broken</a></h2>
  </li>
  <li class="b_algo">
    <h2><a href="https://www.insee.fr/paris">Paris population</a></h2>
    <p>2.1 million inhabitants.</p>
  </li>
</ol></body></html>
"""

BAIDU_HTML = """
<html><body>
  <div class="result c-container" mu="https://baike.baidu.com/item/Paris">
    <h3><a href="https://www.baidu.com/link?url=abc">Paris Baike</a></h3>
    <div class="c-abstract">Capital of France</div>
  </div>
  <div class="result-op c-container">
    <h3><a href="https://www.baidu.com/link?url=def">Paris News</a></h3>
  </div>
  <div class="result"><span>no heading</span></div>
</body></html>
"""

JINA_TEXT = """[1] Title: Paris - Wikipedia
[1] URL Source: https://en.wikipedia.org/wiki/Paris
[1] Description: Paris is the capital
and largest city of France.
[2] Title: Visit Paris
[2] URL Source: https://visitparis.example.com
[2] Description: Tourism guide
"""


def test_bing_parse_results_keeps_organic_absolute_links():
    results = bing_search.parse_results(BING_HTML)
    assert [r.url for r in results] == [
        "https://en.wikipedia.org/wiki/Paris",
        "https://www.insee.fr/paris",
    ]
    assert results[0].title == "Paris - Wikipedia"
    assert results[0].content == "Paris is the capital of France."
    assert results[1].content == "2.1 million inhabitants."


def test_bing_parse_results_respects_max_results():
    assert len(bing_search.parse_results(BING_HTML, max_results=1)) == 1


def test_baidu_parse_results_prefers_target_url():
    results = baidu_search.parse_results(BAIDU_HTML)
    assert [r.title for r in results] == ["Paris Baike", "Paris News"]
    assert results[0].url == "https://baike.baidu.com/item/Paris"
    assert results[0].content == "Capital of France"
    assert results[1].url == "https://www.baidu.com/link?url=def"
    assert results[1].content == ""


def test_jina_parse_results_joins_wrapped_descriptions():
    results = jina_search.parse_results(JINA_TEXT)
    assert len(results) == 2
    assert results[0].content == "Paris is the capital and largest city of France."
    assert results[1].url == "https://visitparis.example.com"


@pytest.mark.asyncio
async def test_jina_search_requires_api_key():
    with patch("searchgraph.tools.jina_search.settings") as mock_settings:
        mock_settings.jina_api_key = ""
        with pytest.raises(ValueError):
            await jina_search.search("query")


def test_resolve_engine_prefers_supported_platform():
    assert search_provider.resolve_engine("Baidu", "bing") == "baidu"
    assert search_provider.resolve_engine("duckduckgo", "bing") == "bing"
    assert search_provider.resolve_engine(None, "jina") == "jina"


@pytest.mark.asyncio
async def test_search_dispatches_to_selected_engine():
    found = [SearchResult(title="t", url="https://example.com")]
    with patch(
        "searchgraph.tools.search_provider.baidu_search.search",
        new=AsyncMock(return_value=found),
    ) as mock_baidu:
        response = await search_provider.search("query", engine="baidu", max_results=3, proxy="")

    assert response.provider == "baidu"
    assert response.results == found
    mock_baidu.assert_awaited_once_with("query", max_results=3, proxy="")


@pytest.mark.asyncio
async def test_search_uses_configured_engine_by_default():
    with patch("searchgraph.tools.search_provider.settings") as mock_settings, patch(
        "searchgraph.tools.search_provider.bing_search.search",
        new=AsyncMock(return_value=[]),
    ):
        mock_settings.search_engine = "bing"
        mock_settings.proxy = ""
        mock_settings.search_timeout_seconds = 5

        response = await search_provider.search("query")

    assert response.provider == "bing"


@pytest.mark.asyncio
async def test_search_raises_when_engine_unsupported():
    with pytest.raises(ValueError):
        await search_provider.search("query", engine="unknown-engine", timeout_seconds=1)


@pytest.mark.asyncio
async def test_slow_search_hits_deadline():
    async def slow_search(query, **kwargs):
        await asyncio.sleep(5)
        return []

    with patch("searchgraph.tools.search_provider.bing_search.search", new=slow_search):
        with pytest.raises(DeadlineExceededError) as exc_info:
            await search_provider.search("query", engine="bing", proxy="", timeout_seconds=0.05)

    assert "bing search" in str(exc_info.value)
