"""Bounded fan-out for independent ledger reads."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, TypeVar

from keep_rewards.errors import QueryTimeoutError

T = TypeVar("T")
R = TypeVar("R")


async def bounded_map(
    fn: Callable[[T], Awaitable[R]],
    items: Iterable[T],
    limit: int,
) -> list[R]:
    """Apply fn to every item with at most `limit` calls in flight.

    Results come back in input order. The first failure cancels every call
    still outstanding and is re-raised; there is no partial result.
    """
    semaphore = asyncio.Semaphore(max(limit, 1))

    async def _run(item: T) -> R:
        async with semaphore:
            return await fn(item)

    tasks = [asyncio.ensure_future(_run(item)) for item in items]
    if not tasks:
        return []
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def with_timeout(awaitable: Awaitable[R], timeout: float | None, what: str) -> R:
    """Await with an optional deadline, surfacing QueryTimeoutError on expiry."""
    if timeout is None or timeout <= 0:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as exc:
        raise QueryTimeoutError(f"{what} timed out after {timeout:g}s") from exc
