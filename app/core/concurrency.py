import asyncio
from typing import Awaitable, Callable, Iterable, Sequence, TypeVar

from app.core.retry import Sleep

T = TypeVar("T")
R = TypeVar("R")


async def gather_bounded(
    items: Iterable[T],
    fn: Callable[[T], Awaitable[R]],
    *,
    limit: int,
) -> list[R | BaseException]:
    """Run ``fn`` over ``items`` with at most ``limit`` calls in flight.

    Results keep input order; a failing call yields its exception in place.
    """
    sem = asyncio.Semaphore(max(1, limit))

    async def run(item: T) -> R:
        async with sem:
            return await fn(item)

    return await asyncio.gather(*(run(i) for i in items), return_exceptions=True)


async def run_in_batches(
    items: Sequence[T],
    fn: Callable[[T], Awaitable[R]],
    *,
    batch_size: int,
    pause: float = 0.0,
    sleep: Sleep = asyncio.sleep,
) -> list[R | BaseException]:
    """Fixed-size batches run concurrently, with a pause between batches."""
    results: list[R | BaseException] = []
    size = max(1, batch_size)
    for start in range(0, len(items), size):
        batch = items[start:start + size]
        results.extend(await asyncio.gather(*(fn(i) for i in batch), return_exceptions=True))
        if pause and start + size < len(items):
            await sleep(pause)
    return results
