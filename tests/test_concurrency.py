import asyncio

from app.core.concurrency import gather_bounded, run_in_batches


async def test_gather_bounded_keeps_order_and_limits_in_flight():
    in_flight = 0
    peak = 0

    async def work(n: int) -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001 * (5 - n % 5))
        in_flight -= 1
        return n * 10

    results = await gather_bounded(range(12), work, limit=3)
    assert results == [n * 10 for n in range(12)]
    assert peak <= 3


async def test_gather_bounded_returns_exceptions_in_place():
    async def work(n: int) -> int:
        if n == 1:
            raise ValueError("bad item")
        return n

    results = await gather_bounded([0, 1, 2], work, limit=2)
    assert results[0] == 0
    assert isinstance(results[1], ValueError)
    assert results[2] == 2


async def test_run_in_batches_pauses_between_batches_only(sleeps):
    seen = []

    async def work(n: int) -> int:
        seen.append(n)
        return n

    results = await run_in_batches(list(range(10)), work, batch_size=4, pause=0.5, sleep=sleeps)
    assert results == list(range(10))
    # three batches, two gaps
    assert sleeps.delays == [0.5, 0.5]
