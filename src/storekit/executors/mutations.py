# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Write-side executors.

BatchedMutationExecutor
    put/delete/increment records grouped into batches of `batch_size`, each
    batch submitted as one store call. The trailing partial batch is always
    drained. With a result callback, batches go through the pooled
    callback-bearing API and the consuming coroutine keeps filling the next
    batch while earlier ones are in flight.

ConditionalMutationExecutor
    check-and-put / check-and-delete, one row at a time; a failed condition is
    an ordinary outcome.

AutoFlushPutExecutor
    plain per-record puts with the table's client-side write buffer.

None of them retries. A failed submission ends the partition task; earlier
batches stay applied.
"""

import time
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

from ..core.errors import BatchSubmissionError
from ..core.log import get_logger
from ..observability.metrics import EngineMetrics
from ..observability.tracing import span
from ..runtime.pool import ExecutionPool
from ..store.client import ResultCallback, Table
from ..store.types import CheckAndDelete, CheckAndPut, ConditionalMutation, Mutation, Put
from .batch import Batch, ExecutorStats

T = TypeVar("T")

__all__ = [
    "AutoFlushPutExecutor",
    "BatchedMutationExecutor",
    "ConditionalMutationExecutor",
]

_log = get_logger("executors.mutations")


class BatchedMutationExecutor(Generic[T]):
    """
    Accumulate → flush at `batch_size` → drain the remainder.

    Args:
        table: table handle borrowed from the enclosing connection scope.
        batch_size: flush threshold (>= 1).
        callback: optional per-mutation result callback; requires `pool`.
        pool: the scope's execution pool (callback path only).
        metrics: optional EngineMetrics sink.
    """

    def __init__(
        self,
        table: Table,
        batch_size: int,
        *,
        callback: ResultCallback | None = None,
        pool: ExecutionPool | None = None,
        metrics: EngineMetrics | None = None,
    ) -> None:
        if callback is not None and pool is None:
            raise ValueError("a result callback requires the scope's execution pool")
        self._table = table
        self._batch: Batch[Mutation] = Batch(batch_size)
        self._callback = callback
        self._pool = pool
        self._metrics = metrics
        self._kind = "mutate_callback" if callback is not None else "mutate"
        self.stats = ExecutorStats()

    async def run(self, records: Iterable[T], build: Callable[[T], Mutation]) -> ExecutorStats:
        for record in records:
            if self._batch.add(build(record)):
                await self._flush()
        if self._batch:
            await self._flush()
        if self._pool is not None:
            await self._pool.join()
        _log.debug(
            "mutations submitted",
            event="mutations.done",
            kind=self._kind,
            flushes=self.stats.flushes,
            operations=self.stats.operations,
        )
        return self.stats

    async def _flush(self) -> None:
        items = self._batch.drain()
        if self._callback is None:
            await self._submit(items)
            return
        if self._pool is None:
            raise RuntimeError("callback flush without an execution pool")
        await self._pool.submit(lambda: self._submit(items))

    async def _submit(self, items: list[Mutation]) -> None:
        started = time.perf_counter()
        with span("storekit.flush", kind=self._kind, size=len(items), table=self._table.name):
            try:
                if self._callback is None:
                    await self._table.batch(items)
                else:
                    await self._table.batch_callback(items, self._callback)
            except Exception as e:
                if self._metrics is not None:
                    self._metrics.observe_failure(self._kind)
                _log.error(
                    "mutation batch failed",
                    event="mutations.flush.failed",
                    kind=self._kind,
                    size=len(items),
                    error=str(e),
                )
                raise BatchSubmissionError(self._kind, len(items), str(e)) from e
        elapsed = self.stats.record_flush(len(items), started)
        if self._metrics is not None:
            self._metrics.observe_flush(self._kind, len(items), elapsed)


class ConditionalMutationExecutor(Generic[T]):
    """Submit each conditional mutation individually and synchronously."""

    def __init__(self, table: Table, *, metrics: EngineMetrics | None = None) -> None:
        self._table = table
        self._metrics = metrics
        self.stats = ExecutorStats()

    async def run(self, records: Iterable[T], build: Callable[[T], ConditionalMutation]) -> ExecutorStats:
        for record in records:
            op = build(record)
            started = time.perf_counter()
            if isinstance(op, CheckAndPut):
                applied = await self._table.check_and_put(op.row, op.family, op.qualifier, op.expected, op.put)
            elif isinstance(op, CheckAndDelete):
                applied = await self._table.check_and_delete(
                    op.row, op.family, op.qualifier, op.expected, op.delete
                )
            else:
                raise TypeError(f"expected CheckAndPut or CheckAndDelete, got {type(op).__name__}")
            elapsed = self.stats.record_flush(1, started)
            if not applied:
                self.stats.rejected += 1
            if self._metrics is not None:
                self._metrics.observe_flush("conditional", 1, elapsed)

        _log.debug(
            "conditional mutations submitted",
            event="conditional.done",
            operations=self.stats.operations,
            rejected=self.stats.rejected,
        )
        return self.stats


class AutoFlushPutExecutor(Generic[T]):
    """
    Per-record puts through the table's write buffer.

    With `auto_flush` every put is sent immediately; otherwise the client
    buffers them and `flush_commits()` at the end pushes the rest.
    """

    def __init__(self, table: Table, *, auto_flush: bool, metrics: EngineMetrics | None = None) -> None:
        self._table = table
        self._auto_flush = auto_flush
        self._metrics = metrics
        self.stats = ExecutorStats()

    async def run(self, records: Iterable[T], build: Callable[[T], Put]) -> ExecutorStats:
        await self._table.set_auto_flush(self._auto_flush)
        started = time.perf_counter()
        count = 0
        for record in records:
            await self._table.put(build(record))
            count += 1
        with span("storekit.flush", kind="put", size=count, table=self._table.name):
            await self._table.flush_commits()
        elapsed = self.stats.record_flush(count, started)
        if self._metrics is not None:
            self._metrics.observe_flush("put", count, elapsed)
        return self.stats
