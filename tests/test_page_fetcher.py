from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from searchgraph.tools import web_utils
from searchgraph.tools.page_fetcher import PageFetcher


def test_unsupported_provider_raises():
    with pytest.raises(ValueError):
        PageFetcher(provider="curl")


@pytest.mark.asyncio
async def test_invalid_url_raises():
    fetcher = PageFetcher(provider="httpx", proxy="")
    with pytest.raises(ValueError):
        await fetcher.fetch("javascript:alert(1)")


@pytest.mark.asyncio
async def test_fetch_cleans_and_truncates_text():
    fetcher = PageFetcher(provider="httpx", proxy="", max_chars=10)
    with patch.object(
        PageFetcher,
        "_fetch_with_httpx",
        new=AsyncMock(return_value="  alpha \n\n beta   gamma delta  "),
    ):
        text = await fetcher.fetch("https://example.com/page")

    assert text == "alpha beta..."


@pytest.mark.asyncio
async def test_fetch_routes_to_jina_reader():
    fetcher = PageFetcher(provider="jina_reader", proxy="", max_chars=0)
    with patch.object(
        PageFetcher,
        "_fetch_with_jina_reader",
        new=AsyncMock(return_value="# Title\nbody"),
    ) as mock_reader:
        text = await fetcher.fetch("https://example.com/page")

    mock_reader.assert_awaited_once_with("https://example.com/page")
    assert text == "# Title body"


def test_html_to_text_drops_noise_tags():
    html = (
        "<html><head><title> Paris </title><style>p{}</style></head>"
        "<body><nav>menu</nav><p>Capital of France.</p><script>track()</script></body></html>"
    )
    title, text = web_utils.html_to_text(html)
    assert title == "Paris"
    assert text == "Capital of France."


def test_proxy_kwargs_only_when_configured():
    assert web_utils.proxy_kwargs("") == {}
    assert web_utils.proxy_kwargs(None) == {}
    assert web_utils.proxy_kwargs(" http://127.0.0.1:7890 ") == {"proxy": "http://127.0.0.1:7890"}
