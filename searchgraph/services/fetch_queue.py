"""Bounded-concurrency task runner with a per-task timeout."""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Generic, TypeVar

from loguru import logger

T = TypeVar("T")
Task = Callable[[], Awaitable[T]]


class FetchQueue(Generic[T]):
    """Run queued tasks with at most `concurrency` in flight.

    A task that raises or runs past `timeout` seconds leaves `None` in its
    result slot and never aborts its siblings. `start()` resolves once every
    task has produced a result or failed; results keep submission order.
    """

    def __init__(self, *, name: str = "queue", concurrency: int = 2, timeout: float = 10.0):
        self.name = name
        self.concurrency = max(int(concurrency), 1)
        self.timeout = timeout
        self._tasks: list[Task[T]] = []
        self.results: list[T | None] = []
        self.errors: dict[int, str] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    def push(self, task: Task[T]) -> int:
        self._tasks.append(task)
        return len(self._tasks) - 1

    async def start(self) -> list[T | None]:
        total = len(self._tasks)
        self.results = [None] * total
        self.errors = {}
        if not total:
            return self.results

        semaphore = asyncio.Semaphore(self.concurrency)
        done = 0
        started = time.monotonic()

        async def run_one(index: int, task: Task[T]) -> None:
            nonlocal done
            async with semaphore:
                try:
                    if self.timeout and self.timeout > 0:
                        self.results[index] = await asyncio.wait_for(task(), timeout=self.timeout)
                    else:
                        self.results[index] = await task()
                except asyncio.TimeoutError:
                    self.errors[index] = f"timed out after {self.timeout:g}s"
                except Exception as exc:
                    self.errors[index] = str(exc) or exc.__class__.__name__
                finally:
                    done += 1
                    logger.debug(f"[FetchQueue:{self.name}] {done}/{total} done")

        await asyncio.gather(*(run_one(i, task) for i, task in enumerate(self._tasks)))

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"[FetchQueue:{self.name}] {total - len(self.errors)}/{total} succeeded in {elapsed_ms}ms"
        )
        for index, reason in sorted(self.errors.items()):
            logger.warning(f"[FetchQueue:{self.name}] task {index} failed: {reason}")
        return self.results

