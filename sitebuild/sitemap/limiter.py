"""Bounded-parallelism combinator for coroutine work items."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def for_each_bounded(
    items: Sequence[T],
    limit: int,
    fn: Callable[[T, int], Awaitable[R]],
) -> list[R | None]:
    """Run ``fn(item, index)`` for every item with at most ``limit`` in flight.

    ``min(limit, len(items))`` workers share one cursor and each claims the
    next unclaimed index when it finishes, so a slow item only delays its own
    worker. Results are aligned with ``items`` regardless of completion order.
    An exception raised by ``fn`` leaves ``None`` in that slot and does not
    disturb sibling items.
    """
    if limit < 1:
        raise ValueError("limit must be >= 1")

    results: list[R | None] = [None] * len(items)
    cursor = 0

    async def worker() -> None:
        nonlocal cursor
        while cursor < len(items):
            index = cursor
            cursor += 1
            try:
                results[index] = await fn(items[index], index)
            except Exception as exc:
                logger.debug("work item %d failed: %s", index, exc)
                results[index] = None

    workers = [asyncio.create_task(worker()) for _ in range(min(limit, len(items)))]
    if workers:
        await asyncio.gather(*workers)
    return results


__all__ = ["for_each_bounded"]
