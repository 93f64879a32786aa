# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Partition functions behind the bulk operations.

Each one is a small frozen dataclass, so it pickles together with the user's
builder/converter functions and can be shipped inside a partition task. They
all follow the same shape: borrow the table from the scope's connection, run
one executor over the records, close the table.
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Generic, TypeVar

from .core.log import log_context
from .executors import (
    AutoFlushPutExecutor,
    BatchedLookupExecutor,
    BatchedMutationExecutor,
    ConditionalMutationExecutor,
)
from .observability.metrics import engine_metrics
from .runtime.scope import PooledConnection
from .store.client import Connection, ResultCallback
from .store.types import ConditionalMutation, Get, Mutation, Put, Result

T = TypeVar("T")
U = TypeVar("U")

__all__ = [
    "BulkCheckAndMutate",
    "BulkGet",
    "BulkMutate",
    "BulkMutateWithCallback",
    "BulkPut",
]


@dataclass(frozen=True)
class BulkPut(Generic[T]):
    table: str
    build: Callable[[T], Put]
    auto_flush: bool
    metrics_enabled: bool = True

    async def __call__(self, records: Iterator[T], conn: Connection) -> None:
        table = conn.table(self.table)
        with log_context(table=self.table):
            try:
                executor = AutoFlushPutExecutor(
                    table, auto_flush=self.auto_flush, metrics=_metrics(self.metrics_enabled)
                )
                await executor.run(records, self.build)
            finally:
                await table.close()


@dataclass(frozen=True)
class BulkMutate(Generic[T]):
    table: str
    build: Callable[[T], Mutation]
    batch_size: int
    metrics_enabled: bool = True

    def __post_init__(self) -> None:
        _check_batch_size(self.batch_size)

    async def __call__(self, records: Iterator[T], conn: Connection) -> None:
        table = conn.table(self.table)
        with log_context(table=self.table):
            try:
                executor = BatchedMutationExecutor(table, self.batch_size, metrics=_metrics(self.metrics_enabled))
                await executor.run(records, self.build)
            finally:
                await table.close()


@dataclass(frozen=True)
class BulkMutateWithCallback(Generic[T]):
    table: str
    build: Callable[[T], Mutation]
    batch_size: int
    callback: ResultCallback
    metrics_enabled: bool = True

    def __post_init__(self) -> None:
        _check_batch_size(self.batch_size)

    async def __call__(self, records: Iterator[T], conn: PooledConnection) -> None:
        table = conn.table(self.table)
        with log_context(table=self.table):
            try:
                executor = BatchedMutationExecutor(
                    table,
                    self.batch_size,
                    callback=self.callback,
                    pool=conn.pool,
                    metrics=_metrics(self.metrics_enabled),
                )
                await executor.run(records, self.build)
            finally:
                await table.close()


@dataclass(frozen=True)
class BulkCheckAndMutate(Generic[T]):
    table: str
    build: Callable[[T], ConditionalMutation]
    auto_flush: bool = True
    metrics_enabled: bool = True

    async def __call__(self, records: Iterator[T], conn: Connection) -> None:
        table = conn.table(self.table)
        with log_context(table=self.table):
            try:
                await table.set_auto_flush(self.auto_flush)
                executor = ConditionalMutationExecutor(table, metrics=_metrics(self.metrics_enabled))
                await executor.run(records, self.build)
                await table.flush_commits()
            finally:
                await table.close()


@dataclass(frozen=True)
class BulkGet(Generic[T, U]):
    table: str
    build: Callable[[T], Get]
    convert: Callable[[Result], U]
    batch_size: int
    metrics_enabled: bool = True

    def __post_init__(self) -> None:
        _check_batch_size(self.batch_size)

    async def __call__(self, records: Iterator[T], conn: Connection) -> list[U]:
        table = conn.table(self.table)
        with log_context(table=self.table):
            try:
                executor = BatchedLookupExecutor(
                    table, self.batch_size, self.convert, metrics=_metrics(self.metrics_enabled)
                )
                return await executor.run(records, self.build)
            finally:
                await table.close()


def _metrics(enabled: bool):
    return engine_metrics() if enabled else None


def _check_batch_size(batch_size: int) -> None:
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
