import asyncio

import pytest

from adframe.limiter import ConcurrencyLimiter


def test_limiter_rejects_non_positive_bound():
    with pytest.raises(ValueError):
        ConcurrencyLimiter(0)


def test_limiter_bounds_running_jobs_and_admits_in_arrival_order():
    async def scenario():
        limiter = ConcurrencyLimiter(2)
        running = 0
        peak = 0
        started: list[int] = []

        async def job(i: int) -> int:
            nonlocal running, peak
            started.append(i)
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return i * 10

        results = await asyncio.gather(*(limiter.run(job, i) for i in range(6)))
        return limiter, results, peak, started

    limiter, results, peak, started = asyncio.run(scenario())
    assert results == [0, 10, 20, 30, 40, 50]
    assert peak == 2
    assert started == [0, 1, 2, 3, 4, 5]
    assert limiter.running_count == 0
    assert limiter.pending_count == 0


def test_limiter_releases_slot_when_job_fails():
    async def scenario():
        limiter = ConcurrencyLimiter(1)

        async def boom():
            raise RuntimeError("boom")

        async def ok():
            return "ok"

        with pytest.raises(RuntimeError):
            await limiter.run(boom)
        return limiter, await limiter.run(ok)

    limiter, value = asyncio.run(scenario())
    assert value == "ok"
    assert limiter.running_count == 0


def test_cancelled_waiter_does_not_leak_a_slot():
    async def scenario():
        limiter = ConcurrencyLimiter(1)
        gate = asyncio.Event()

        async def hold():
            await gate.wait()

        holder = asyncio.create_task(limiter.run(hold))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(limiter.run(hold))
        await asyncio.sleep(0)
        assert limiter.pending_count == 1
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        gate.set()
        await holder
        return limiter

    limiter = asyncio.run(scenario())
    assert limiter.running_count == 0
    assert limiter.pending_count == 0
