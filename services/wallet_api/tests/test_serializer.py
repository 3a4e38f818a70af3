from __future__ import annotations

import asyncio

import pytest

from services.wallet_api.app.serializer import RequestSerializer


@pytest.mark.asyncio
async def test_tasks_run_one_at_a_time_in_submission_order():
    serializer = RequestSerializer()
    events: list[str] = []

    def make_task(name: str, pause: float):
        async def task() -> str:
            events.append(f"start:{name}")
            # A chain of inner awaits must finish before the next task starts
            await asyncio.sleep(pause)
            await asyncio.sleep(0)
            events.append(f"end:{name}")
            return name

        return task

    results = await asyncio.gather(
        serializer.submit(make_task("a", 0.03)),
        serializer.submit(make_task("b", 0.0)),
        serializer.submit(make_task("c", 0.01)),
    )

    assert results == ["a", "b", "c"]
    assert events == ["start:a", "end:a", "start:b", "end:b", "start:c", "end:c"]
    await serializer.stop()


@pytest.mark.asyncio
async def test_failure_is_reported_to_its_caller_only():
    serializer = RequestSerializer()

    async def boom() -> None:
        await asyncio.sleep(0)
        raise ValueError("broken task")

    async def fine() -> int:
        return 42

    failing = serializer.enqueue(boom)
    following = serializer.enqueue(fine)

    with pytest.raises(ValueError, match="broken task"):
        await failing
    assert await following == 42
    assert serializer.running
    await serializer.stop()


@pytest.mark.asyncio
async def test_enqueued_task_runs_even_if_caller_stops_waiting():
    serializer = RequestSerializer()
    gate = asyncio.Event()
    ran: list[str] = []

    async def slow() -> None:
        await gate.wait()

    async def abandoned() -> None:
        ran.append("abandoned")

    serializer.enqueue(slow)
    waiter = asyncio.ensure_future(serializer.submit(abandoned))
    await asyncio.sleep(0)
    waiter.cancel()
    gate.set()
    await serializer.join()

    assert ran == ["abandoned"]
    await serializer.stop()


@pytest.mark.asyncio
async def test_stop_cancels_pending_callers():
    serializer = RequestSerializer()
    gate = asyncio.Event()

    async def blocked() -> None:
        await gate.wait()

    async def queued() -> str:
        return "never"

    in_flight = serializer.enqueue(blocked)
    waiting = serializer.enqueue(queued)
    await asyncio.sleep(0)

    await serializer.stop()

    assert in_flight.cancelled()
    assert waiting.cancelled()
    assert not serializer.running
    assert serializer.pending == 0
