"""Strategies for walking one sibling group of the question tree."""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Protocol

from searchgraph.config import settings

SubtreeRunner = Callable[[str], Awaitable[None]]


class SiblingExecutor(Protocol):
    async def run(self, node_ids: list[str], run_subtree: SubtreeRunner) -> None: ...


class SequentialSiblingExecutor:
    """Each sibling, with its whole subtree, resolves before the next one starts."""

    async def run(self, node_ids: list[str], run_subtree: SubtreeRunner) -> None:
        for node_id in node_ids:
            await run_subtree(node_id)


class BoundedParallelSiblingExecutor:
    """Run up to `max_parallel` sibling subtrees at once.

    A node still executes before its own children; only siblings overlap.
    """

    def __init__(self, max_parallel: int = 3):
        self.max_parallel = max(int(max_parallel), 1)

    async def run(self, node_ids: list[str], run_subtree: SubtreeRunner) -> None:
        semaphore = asyncio.Semaphore(self.max_parallel)

        async def guarded(node_id: str) -> None:
            async with semaphore:
                await run_subtree(node_id)

        await asyncio.gather(*(guarded(node_id) for node_id in node_ids))


def get_sibling_executor(mode: str | None = None) -> SiblingExecutor:
    selected = (mode or settings.sibling_execution).lower().strip()
    if selected == "sequential":
        return SequentialSiblingExecutor()
    if selected == "parallel":
        return BoundedParallelSiblingExecutor(settings.max_parallel_siblings)
    raise ValueError(f"Unsupported SIBLING_EXECUTION: {selected}")
