"""
Bounded concurrent execution of independent work items

A fixed pool of lanes drains a shared queue of item indices. Each lane claims
the next index, runs the worker on it, and optionally pauses before claiming
again.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from weread_export.constants import DEFAULT_CONCURRENCY, DEFAULT_DELAY_MS

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def sleep_ms(ms: int | float) -> None:
    """Suspend the calling task for ``ms`` milliseconds.

    Zero yields to the event loop once without a meaningful pause.
    """
    if ms < 0:
        raise ValueError(f"Delay must be non-negative, got {ms}")
    await asyncio.sleep(ms / 1000)


async def run_bounded(
    items: Sequence[T],
    worker: Callable[[T, int], Awaitable[Any]],
    concurrency: int = DEFAULT_CONCURRENCY,
    delay_ms: int = DEFAULT_DELAY_MS,
) -> None:
    """
    Run ``worker(item, index)`` for every item with at most ``concurrency`` in flight.

    Args:
        items: Work items, claimed in ascending index order
        worker: Async callable invoked once per item
        concurrency: Number of lanes, clamped to [1, len(items)]
        delay_ms: Per-lane pause after each item while unclaimed items remain

    Worker exceptions are not caught. The first one ends the run and is
    re-raised after the other lanes have been cancelled.
    """
    total = len(items)
    if not total:
        return

    lane_count = max(1, min(concurrency, total))

    # Indices are enqueued up front; get_nowait() claims one without suspending
    pending: asyncio.Queue[int] = asyncio.Queue()
    for index in range(total):
        pending.put_nowait(index)

    async def lane() -> None:
        while True:
            try:
                index = pending.get_nowait()
            except asyncio.QueueEmpty:
                return

            await worker(items[index], index)

            if delay_ms and not pending.empty():
                await sleep_ms(delay_ms)

    logger.debug(f"Starting {lane_count} lanes for {total} items (delay {delay_ms}ms)")
    lanes = [asyncio.create_task(lane()) for _ in range(lane_count)]

    try:
        await asyncio.gather(*lanes)
    finally:
        for task in lanes:
            if not task.done():
                task.cancel()
        # Let cancelled lanes unwind before the error leaves this call
        await asyncio.gather(*lanes, return_exceptions=True)
