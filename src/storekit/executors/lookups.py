# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

from ..core.errors import BatchSubmissionError
from ..core.log import get_logger
from ..observability.metrics import EngineMetrics
from ..observability.tracing import span
from ..store.client import Table
from ..store.types import Get, Result
from .batch import Batch, ExecutorStats

T = TypeVar("T")
U = TypeVar("U")

__all__ = ["BatchedLookupExecutor"]

_log = get_logger("executors.lookups")


class BatchedLookupExecutor(Generic[T, U]):
    """
    Batched point reads with per-result conversion.

    Each flush issues one multi-row `get`; results are converted in request
    order and appended to the output, so the output lines up with the input.
    The whole output is materialized before `run` returns. A failed lookup
    ends the run; re-running means re-reading the partition from the start.
    """

    def __init__(
        self,
        table: Table,
        batch_size: int,
        convert: Callable[[Result], U],
        *,
        metrics: EngineMetrics | None = None,
    ) -> None:
        self._table = table
        self._batch: Batch[Get] = Batch(batch_size)
        self._convert = convert
        self._metrics = metrics
        self.stats = ExecutorStats()

    async def run(self, records: Iterable[T], build: Callable[[T], Get]) -> list[U]:
        out: list[U] = []
        for record in records:
            if self._batch.add(build(record)):
                out.extend(await self._flush())
        if self._batch:
            out.extend(await self._flush())
        _log.debug(
            "lookups done",
            event="lookups.done",
            flushes=self.stats.flushes,
            operations=self.stats.operations,
        )
        return out

    async def _flush(self) -> list[U]:
        gets = self._batch.drain()
        started = time.perf_counter()
        with span("storekit.flush", kind="lookup", size=len(gets), table=self._table.name):
            try:
                results = await self._table.get(gets)
            except Exception as e:
                if self._metrics is not None:
                    self._metrics.observe_failure("lookup")
                raise BatchSubmissionError("lookup", len(gets), str(e)) from e
        if len(results) != len(gets):
            if self._metrics is not None:
                self._metrics.observe_failure("lookup")
            raise BatchSubmissionError(
                "lookup", len(gets), f"store returned {len(results)} result(s) for {len(gets)} request(s)"
            )
        elapsed = self.stats.record_flush(len(gets), started)
        if self._metrics is not None:
            self._metrics.observe_flush("lookup", len(gets), elapsed)
        return [self._convert(r) for r in results]
