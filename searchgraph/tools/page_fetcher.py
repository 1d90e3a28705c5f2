from __future__ import annotations

from typing import Awaitable, Callable

import httpx

from searchgraph.config import settings
from searchgraph.tools import web_utils

SUPPORTED_PROVIDERS = ("httpx", "jina_reader", "playwright")


class PageFetcher:
    """Fetch a page body as plain text. Errors propagate to the caller's queue."""

    def __init__(
        self,
        *,
        provider: str | None = None,
        proxy: str | None = None,
        timeout_seconds: float | None = None,
        max_chars: int | None = None,
        jina_reader_base_url: str | None = None,
    ):
        self.provider = (provider or settings.fetch_provider).lower().strip()
        if self.provider not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Unsupported FETCH_PROVIDER: {self.provider}")
        self.proxy = settings.proxy if proxy is None else proxy
        self.timeout_seconds = (
            settings.fetch_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self.max_chars = settings.fetch_max_page_chars if max_chars is None else max_chars
        self.jina_reader_base_url = (
            jina_reader_base_url
            if jina_reader_base_url is not None
            else settings.jina_reader_base_url
        ).strip()

    async def fetch(self, url: str) -> str:
        if not web_utils.is_valid_url(url):
            raise ValueError(f"Invalid URL: {url}")
        fetchers: dict[str, Callable[[str], Awaitable[str]]] = {
            "httpx": self._fetch_with_httpx,
            "jina_reader": self._fetch_with_jina_reader,
            "playwright": self._fetch_with_playwright,
        }
        text = await fetchers[self.provider](url)
        return web_utils.clean_content(text, max_length=self.max_chars)

    async def _fetch_with_httpx(self, url: str) -> str:
        async with httpx.AsyncClient(
            timeout=max(self.timeout_seconds, 1.0),
            follow_redirects=True,
            headers=web_utils.DEFAULT_HEADERS,
            **web_utils.proxy_kwargs(self.proxy),
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
        content_type = response.headers.get("content-type", "")
        if "html" not in content_type and "xml" not in content_type:
            return response.text
        _title, text = web_utils.html_to_text(response.text)
        return text

    async def _fetch_with_jina_reader(self, url: str) -> str:
        if not self.jina_reader_base_url:
            raise RuntimeError("Jina reader base URL not configured")
        base = self.jina_reader_base_url
        if "{url}" in base:
            target = base.format(url=url)
        else:
            target = base.rstrip("/") + "/" + url

        headers = {"X-Return-Format": "markdown"}
        if settings.jina_api_key:
            headers["Authorization"] = f"Bearer {settings.jina_api_key}"
        async with httpx.AsyncClient(
            timeout=max(self.timeout_seconds, 1.0),
            follow_redirects=True,
            **web_utils.proxy_kwargs(self.proxy),
        ) as client:
            response = await client.get(target, headers=headers)
            response.raise_for_status()
        return response.text

    async def _fetch_with_playwright(self, url: str) -> str:
        try:
            from playwright.async_api import async_playwright
        except ImportError as exc:  # pragma: no cover - depends on optional package
            raise RuntimeError("Playwright is not installed") from exc

        launch_kwargs: dict = {"headless": True}
        if self.proxy:
            launch_kwargs["proxy"] = {"server": self.proxy}
        async with async_playwright() as playwright:  # pragma: no cover - integration behavior
            browser = await playwright.chromium.launch(**launch_kwargs)
            try:
                page = await browser.new_page()
                await page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=int(self.timeout_seconds * 1000),
                )
                html = await page.content()
            finally:
                await browser.close()
        _title, text = web_utils.html_to_text(html)
        return text
