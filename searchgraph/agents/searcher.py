from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from searchgraph.config import settings
from searchgraph.llm_client import LLMPool
from searchgraph.models.graph import Page, QuestionAnswer
from searchgraph.services.fetch_queue import FetchQueue
from searchgraph.services.prompt_store import render_prompt
from searchgraph.services.timing import Timer
from searchgraph.tools import search_provider
from searchgraph.tools.page_fetcher import PageFetcher

NO_LINKS_ANSWER = "no related links found"
NO_CONTENT_ANSWER = "no sufficiently related page content found"
SENTINEL_ANSWERS = frozenset({NO_LINKS_ANSWER, NO_CONTENT_ANSWER})


@dataclass
class SearchRunResult:
    content: str
    pages: list[Page] = field(default_factory=list)
    answer: str = ""
    timing: dict[str, Any] = field(default_factory=dict)

    @property
    def usable(self) -> bool:
        return bool(self.pages) and bool(self.answer) and self.answer not in SENTINEL_ANSWERS


class Searcher:
    """Searches the web for one question and synthesizes an answer from the pages."""

    def __init__(
        self,
        llm_pool: LLMPool,
        *,
        search_engine: str | None = None,
        proxy: str | None = None,
        max_concurrency: int | None = None,
        timeout: float | None = None,
        max_results: int | None = None,
        fetcher: PageFetcher | None = None,
    ):
        self.llm_pool = llm_pool
        self.search_engine = search_engine or settings.search_engine
        self.proxy = settings.proxy if proxy is None else proxy
        self.max_concurrency = max_concurrency or settings.fetch_concurrency
        self.timeout = settings.fetch_timeout_seconds if timeout is None else timeout
        self.max_results = max_results or settings.search_max_results
        self.fetcher = fetcher or PageFetcher(proxy=self.proxy, timeout_seconds=self.timeout)

    async def _search_links(self, content: str) -> list[Page]:
        response = await search_provider.search(
            content,
            engine=self.search_engine,
            max_results=self.max_results,
            proxy=self.proxy,
        )
        links = [r for r in response.results if r.url and r.url.strip()][: self.max_results]
        return [
            Page(id=index, title=link.title, url=link.url.strip())
            for index, link in enumerate(links)
        ]

    async def _fetch_pages(self, links: list[Page]) -> list[Page]:
        queue: FetchQueue[Page] = FetchQueue(
            name="fetch:content",
            concurrency=self.max_concurrency,
            timeout=self.timeout,
        )

        def make_task(link: Page):
            async def task() -> Page:
                text = await self.fetcher.fetch(link.url)
                return Page(id=link.id, title=link.title, url=link.url, content=text or None)

            return task

        for link in links:
            queue.push(make_task(link))

        results = await queue.start()
        return [page for page in results if page is not None and page.content]

    async def run(self, content: str, parent_responses: list[QuestionAnswer]) -> SearchRunResult:
        timer = Timer()

        timer.start("search_links")
        links = await self._search_links(content)
        timer.end("search_links")
        logger.info(f"[Searcher] {len(links)} links via {self.search_engine} for: {content[:100]}")

        if not links:
            return SearchRunResult(content=content, answer=NO_LINKS_ANSWER, timing=timer.get_metrics())

        timer.start("fetch_pages")
        pages = await self._fetch_pages(links)
        timer.end("fetch_pages")

        if not pages:
            logger.warning(f"[Searcher] No page content fetched for: {content[:100]}")
            return SearchRunResult(content=content, answer=NO_CONTENT_ANSWER, timing=timer.get_metrics())

        timer.start("answer_generation")
        answer = await self.answer(content, pages, parent_responses)
        timer.end("answer_generation")

        return SearchRunResult(
            content=content,
            pages=pages,
            answer=answer,
            timing=timer.get_metrics(),
        )

    async def answer(
        self,
        question: str,
        pages: list[Page],
        parent_responses: list[QuestionAnswer],
    ) -> str:
        prompt = render_prompt(
            "searcher.answer",
            instructions=render_prompt("synthesis.instructions"),
            context="\n---\n".join(
                f"- Question: {r.content}\n- Answer: {r.answer}" for r in parent_responses
            ),
            question=question,
            pages="\n---\n".join(
                f"[{p.id}]\n- Title: {p.title}\n- URL: {p.url}\n- Content: {p.content}"
                for p in pages
            ),
        )
        return await self.llm_pool.next().generate(prompt, caller="searcher")
