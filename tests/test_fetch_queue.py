from __future__ import annotations

import asyncio
import time

import pytest

from searchgraph.services.fetch_queue import FetchQueue


@pytest.mark.asyncio
async def test_stuck_task_times_out_without_blocking_siblings():
    queue: FetchQueue[str] = FetchQueue(name="test", concurrency=2, timeout=0.2)

    def make(index: int):
        async def task() -> str:
            if index == 2:
                await asyncio.Event().wait()
            await asyncio.sleep(0.01)
            return f"content-{index}"

        return task

    for i in range(5):
        queue.push(make(i))

    started = time.monotonic()
    results = await queue.start()
    elapsed = time.monotonic() - started

    assert results == ["content-0", "content-1", None, "content-3", "content-4"]
    assert list(queue.errors) == [2]
    assert "timed out" in queue.errors[2]
    assert elapsed < 1.5


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    in_flight = 0
    peak = 0

    async def task() -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.02)
        in_flight -= 1
        return 1

    queue: FetchQueue[int] = FetchQueue(name="bounded", concurrency=2, timeout=5)
    for _ in range(6):
        queue.push(task)
    results = await queue.start()

    assert results == [1] * 6
    assert peak == 2


@pytest.mark.asyncio
async def test_failures_leave_empty_slots_in_submission_order():
    async def ok() -> str:
        return "ok"

    async def boom() -> str:
        raise ValueError("bad page")

    queue: FetchQueue[str] = FetchQueue(concurrency=3, timeout=1)
    queue.push(boom)
    queue.push(ok)
    queue.push(boom)

    results = await queue.start()

    assert results == [None, "ok", None]
    assert queue.results is results
    assert queue.errors[0] == "bad page"


@pytest.mark.asyncio
async def test_empty_queue_completes_immediately():
    queue: FetchQueue[str] = FetchQueue()
    assert await queue.start() == []
    assert len(queue) == 0


def test_concurrency_floor_is_one():
    assert FetchQueue(concurrency=0).concurrency == 1
