from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

T = TypeVar("T")


class DeadlineExceededError(TimeoutError):
    """An external call did not resolve before its deadline."""

    def __init__(self, label: str, seconds: float):
        super().__init__(f"{label} exceeded deadline of {seconds:g}s")
        self.label = label
        self.seconds = seconds


async def with_deadline(awaitable: Awaitable[T], seconds: float | None, label: str) -> T:
    """Await `awaitable`, cancelling it after `seconds`. Non-positive disables."""
    if not seconds or seconds <= 0:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as exc:
        raise DeadlineExceededError(label, seconds) from exc
