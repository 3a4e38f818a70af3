from __future__ import annotations

import asyncio
import time
from contextlib import suppress
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from .metrics import serializer_queue_depth, serializer_task_seconds

T = TypeVar("T")

Task = Callable[[], Awaitable[Any]]


class RequestSerializer:
    """Process-wide FIFO that runs database work one task at a time.

    Every request handler that touches the store hands its work to
    :meth:`submit`. A single worker drains the queue, so a task only starts
    once the previous one has fully settled, including all of its inner
    awaits. Ordering is global across wallets.

    A failing task only fails its own caller. The worker keeps going, and a
    caller that goes away does not stop its task from running once enqueued.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[tuple[Task, asyncio.Future[Any]]] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def enqueue(self, task: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """Queue ``task`` and return a future settled with its outcome."""
        self._ensure_worker()
        assert self._queue is not None and self._loop is not None
        future: asyncio.Future[T] = self._loop.create_future()
        self._queue.put_nowait((task, future))
        serializer_queue_depth.inc()
        return future

    async def submit(self, task: Callable[[], Awaitable[T]]) -> T:
        return await self.enqueue(task)

    def _ensure_worker(self) -> None:
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            # First use, or the previous loop is gone; anything queued there is lost
            self._queue = asyncio.Queue()
            self._worker = None
            self._loop = loop
        if not self.running:
            self._worker = loop.create_task(self._run(), name="wallet-request-serializer")

    async def _run(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            task, future = await queue.get()
            serializer_queue_depth.dec()
            started = time.perf_counter()
            try:
                result = await task()
            except asyncio.CancelledError:
                if not future.done():
                    future.cancel()
                raise
            except Exception as exc:
                logger.warning("Serialized task failed: {!r}", exc)
                if not future.done():
                    future.set_exception(exc)
            else:
                if not future.done():
                    future.set_result(result)
            finally:
                serializer_task_seconds.observe(time.perf_counter() - started)
                queue.task_done()

    async def join(self) -> None:
        """Wait until every task queued so far has settled."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """Stop the worker; callers still waiting in the queue are cancelled."""
        worker, self._worker = self._worker, None
        if self._loop is not asyncio.get_running_loop():
            self._queue = None
            self._loop = None
            return
        if worker is not None and not worker.done():
            worker.cancel()
            with suppress(asyncio.CancelledError):
                await worker
        if self._queue is not None:
            while not self._queue.empty():
                _task, future = self._queue.get_nowait()
                serializer_queue_depth.dec()
                future.cancel()
                self._queue.task_done()
        self._queue = None
        self._loop = None
