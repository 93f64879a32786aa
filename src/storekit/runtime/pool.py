# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from ..core.log import get_logger

TaskFn = Callable[[], Awaitable[None]]

_log = get_logger("runtime.pool")


class ExecutionPool:
    """
    Bounded pool of in-flight submissions for one connection scope.

    Usage:
      pool = ExecutionPool(size=10)
      await pool.submit(lambda: table.batch_callback(batch, cb))
      ...
      await pool.join()      # explicit join point before the connection closes
      await pool.shutdown()

    Notes:
      - Backpressure: submit() awaits until a slot is free, so at most `size`
        submissions run concurrently with the caller.
      - join() waits for every submitted task and re-raises the first failure.
      - After a failure, further submit() calls raise it immediately.
    """

    def __init__(self, *, size: int) -> None:
        if size < 1:
            raise ValueError("pool size must be >= 1")
        self.size = size
        self._sem = asyncio.Semaphore(size)
        self._tasks: set[asyncio.Task] = set()
        self._error: Optional[BaseException] = None
        self._closed = False

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def closed(self) -> bool:
        return self._closed

    async def submit(self, fn: TaskFn) -> None:
        if self._closed:
            raise RuntimeError("execution pool is shut down")
        self._raise_pending()
        await self._sem.acquire()
        if self._error is not None:
            self._sem.release()
            self._raise_pending()

        async def _run() -> None:
            try:
                await fn()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if self._error is None:
                    self._error = e
                raise
            finally:
                self._sem.release()

        task = asyncio.create_task(_run())
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    async def join(self) -> None:
        """Wait for all in-flight submissions; raise the first failure, if any."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._raise_pending()

    async def shutdown(self) -> None:
        """Cancel anything still running (abandoned scope) and refuse new work."""
        self._closed = True
        pending = [t for t in self._tasks if not t.done()]
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            _log.warning("pool shut down with in-flight submissions", event="pool.cancelled", count=len(pending))

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled():
            # the failure is kept in self._error; retrieve it so asyncio does not report it
            task.exception()

    def _raise_pending(self) -> None:
        if self._error is not None:
            raise self._error
