"""Concurrent fan-out helpers for ERP reads."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

K = TypeVar("K")
R = TypeVar("R")


async def gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """Await every awaitable; the first failure cancels the rest.

    The original exception propagates unwrapped, after the cancelled
    siblings have finished unwinding.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def gather_bounded(
    keys: Sequence[K],
    compute: Callable[[K], Awaitable[R]],
    limit: int,
) -> list[R]:
    """Run ``compute`` for every key, at most ``limit`` at a time.

    Results come back in the order of ``keys`` whatever the completion order.
    Cancelling the caller, or a failing computation, cancels every
    computation still pending.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def run(key: K) -> R:
        async with semaphore:
            return await compute(key)

    return await gather_or_cancel(*(run(key) for key in keys))
