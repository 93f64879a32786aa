# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
StoreContext: driver-side facade for bulk operations against the store.

Construct one per job on the driver. It captures credentials, broadcasts the
configuration snapshot, optionally stages the snapshot on shared storage, and
turns every bulk operation into a partition task that the dataflow engine runs
on its workers. Connection management is never the caller's concern: user
functions receive an open connection and must not close it.

    ctx = StoreContext(engine, client, snapshot, tmp_config_path="/shared/job-42.json")
    ctx.bulk_put(dataset, "events", to_put, auto_flush=False)
    found = ctx.bulk_get("events", 100, keys, to_get, decode)
"""

import dataclasses
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from .core.config import EngineConfig
from .core.errors import ConfigurationUnavailableError, ScanError
from .core.log import get_logger
from .dataflow import DataflowEngine, DataStream, PartitionedDataset
from .operations import BulkCheckAndMutate, BulkGet, BulkMutate, BulkMutateWithCallback, BulkPut
from .runtime.resolver import write_persisted_snapshot
from .runtime.runner import ForeachFn, MapFn, PooledForeachFn
from .runtime.tasks import ForeachPartitionTask, MapPartitionTask, PooledForeachPartitionTask, TaskEnvironment
from .scan import CredentialsInit, MapEach, RowCells, TableInputReader, row_cells
from .snapshot import ConfigurationSnapshot, CredentialBundle
from .store.client import ResultCallback, StoreClient
from .store.types import (
    CheckAndDelete,
    CheckAndPut,
    Delete,
    Get,
    Increment,
    Mutation,
    Put,
    Result,
    Scan,
)

T = TypeVar("T")
U = TypeVar("U")

__all__ = ["StoreContext"]

_log = get_logger("context")


class StoreContext:
    """
    Facade over partition-scoped store access.

    Args:
        engine: dataflow engine (broadcast + driver credentials).
        client: store client; shipped to workers with every task.
        snapshot: configuration used to reach the store.
        config: engine settings; defaults from `EngineConfig()`.
        tmp_config_path: shared location for the persisted snapshot fallback
            (overrides `config.tmp_config_path`).
        credentials_init: store-specific step that acquires delegation tokens
            for the job; its bundle travels with every task.
        scan_reader: delegated reader used by `scan` / `scan_rows`.
    """

    def __init__(
        self,
        engine: DataflowEngine,
        client: StoreClient,
        snapshot: ConfigurationSnapshot,
        *,
        config: EngineConfig | None = None,
        tmp_config_path: str | None = None,
        credentials_init: CredentialsInit | None = None,
        scan_reader: TableInputReader | None = None,
    ) -> None:
        cfg = config or EngineConfig()
        if tmp_config_path is not None:
            cfg = dataclasses.replace(cfg, tmp_config_path=tmp_config_path)
        self.config = cfg
        self._engine = engine
        self._snapshot = snapshot
        self._credentials_init = credentials_init
        self._scan_reader = scan_reader

        self.credentials: CredentialBundle | None = engine.current_user_credentials()
        self.store_credentials: CredentialBundle | None = credentials_init(snapshot) if credentials_init else None

        self._env = TaskEnvironment(
            client=client,
            snapshot=engine.broadcast(snapshot),
            engine_credentials=engine.broadcast(self.credentials),
            task_credentials=engine.broadcast(self.store_credentials),
            config=cfg,
        )

        if cfg.tmp_config_path and snapshot is not None:
            write_persisted_snapshot(cfg.tmp_config_path, snapshot)

        _log.info(
            "store context ready",
            event="context.init",
            quorum=snapshot.quorum if snapshot is not None else None,
            tmp_config_path=cfg.tmp_config_path,
            secured=self.credentials is not None,
            context_id=self._env.context_id,
        )

    @property
    def environment(self) -> TaskEnvironment:
        return self._env

    # ---- generic partition access

    def foreach_partition(self, dataset: PartitionedDataset[T], fn: ForeachFn[T]) -> None:
        """Run `fn(records, connection)` over every partition of `dataset`."""
        dataset.foreach_partition(ForeachPartitionTask(self._env, fn))

    def foreach_stream(self, stream: DataStream[T], fn: ForeachFn[T]) -> None:
        """Streaming `foreach_partition`: re-invoked once per arriving batch."""
        stream.foreach_batch(_PerBatch(self.foreach_partition, (fn,)))

    def map_partitions(self, dataset: PartitionedDataset[T], fn: MapFn[T, U]) -> PartitionedDataset[U]:
        """
        Map every partition through `fn(records, connection)`.

        Partition sizes should keep each partition's output in memory; it is
        materialized before the connection closes.
        """
        return dataset.map_partitions(MapPartitionTask(self._env, fn), preserves_partitioning=True)

    def stream_map(self, stream: DataStream[T], fn: MapFn[T, U]) -> DataStream[U]:
        return stream.map_partitions(MapPartitionTask(self._env, fn), preserves_partitioning=True)

    def foreach_partition_pooled(self, dataset: PartitionedDataset[T], fn: PooledForeachFn[T]) -> None:
        """Like `foreach_partition`, but the connection carries an execution pool."""
        dataset.foreach_partition(PooledForeachPartitionTask(self._env, fn))

    # ---- puts

    def bulk_put(
        self, dataset: PartitionedDataset[T], table: str, build: Callable[[T], Put], auto_flush: bool
    ) -> None:
        self.foreach_partition(dataset, BulkPut(table, build, auto_flush, self.config.metrics_enabled))

    def stream_bulk_put(
        self, stream: DataStream[T], table: str, build: Callable[[T], Put], auto_flush: bool
    ) -> None:
        stream.foreach_batch(_PerBatch(self.bulk_put, (table, build, auto_flush)))

    def bulk_check_and_put(
        self,
        dataset: PartitionedDataset[T],
        table: str,
        build: Callable[[T], CheckAndPut],
        auto_flush: bool,
    ) -> None:
        self.foreach_partition(dataset, BulkCheckAndMutate(table, build, auto_flush, self.config.metrics_enabled))

    def stream_bulk_check_and_put(
        self, stream: DataStream[T], table: str, build: Callable[[T], CheckAndPut], auto_flush: bool
    ) -> None:
        stream.foreach_batch(_PerBatch(self.bulk_check_and_put, (table, build, auto_flush)))

    # ---- increments / deletes

    def bulk_increment(
        self,
        dataset: PartitionedDataset[T],
        table: str,
        build: Callable[[T], Increment],
        batch_size: int | None = None,
    ) -> None:
        self._bulk_mutation(dataset, table, build, batch_size)

    def bulk_increment_with_callback(
        self,
        dataset: PartitionedDataset[T],
        table: str,
        build: Callable[[T], Increment],
        batch_size: int | None,
        callback: ResultCallback,
    ) -> None:
        self._bulk_mutation_with_callback(dataset, table, build, batch_size, callback)

    def stream_bulk_increment(
        self, stream: DataStream[T], table: str, build: Callable[[T], Increment], batch_size: int | None = None
    ) -> None:
        self._stream_bulk_mutation(stream, table, build, batch_size)

    def bulk_delete(
        self,
        dataset: PartitionedDataset[T],
        table: str,
        build: Callable[[T], Delete],
        batch_size: int | None = None,
    ) -> None:
        self._bulk_mutation(dataset, table, build, batch_size)

    def bulk_delete_with_callback(
        self,
        dataset: PartitionedDataset[T],
        table: str,
        build: Callable[[T], Delete],
        batch_size: int | None,
        callback: ResultCallback,
    ) -> None:
        self._bulk_mutation_with_callback(dataset, table, build, batch_size, callback)

    def stream_bulk_delete(
        self, stream: DataStream[T], table: str, build: Callable[[T], Delete], batch_size: int | None = None
    ) -> None:
        self._stream_bulk_mutation(stream, table, build, batch_size)

    def bulk_check_and_delete(
        self, dataset: PartitionedDataset[T], table: str, build: Callable[[T], CheckAndDelete]
    ) -> None:
        self.foreach_partition(dataset, BulkCheckAndMutate(table, build, True, self.config.metrics_enabled))

    def stream_bulk_check_and_delete(
        self, stream: DataStream[T], table: str, build: Callable[[T], CheckAndDelete]
    ) -> None:
        stream.foreach_batch(_PerBatch(self.bulk_check_and_delete, (table, build)))

    # ---- lookups

    def bulk_get(
        self,
        table: str,
        batch_size: int,
        dataset: PartitionedDataset[T],
        build: Callable[[T], Get],
        convert: Callable[[Result], U],
    ) -> PartitionedDataset[U]:
        """Batched point lookups; output partitions line up with input partitions."""
        return self.map_partitions(
            dataset, BulkGet(table, build, convert, batch_size, self.config.metrics_enabled)
        )

    def stream_bulk_get(
        self,
        table: str,
        batch_size: int,
        stream: DataStream[T],
        build: Callable[[T], Get],
        convert: Callable[[Result], U],
    ) -> DataStream[U]:
        return self.stream_map(stream, BulkGet(table, build, convert, batch_size, self.config.metrics_enabled))

    # ---- scans (delegated)

    def scan(self, table: str, scan: Scan, convert: Callable[[tuple[bytes, Result]], U]) -> PartitionedDataset[U]:
        """Full-table scan through the delegated reader, each (key, Result) mapped by `convert`."""
        if self._scan_reader is None:
            raise ScanError("no table input reader configured for scans")
        if self._snapshot is None:
            raise ConfigurationUnavailableError("scan requires a configuration snapshot on the driver")
        credentials = self.credentials
        if self._credentials_init is not None:
            fresh = self._credentials_init(self._snapshot)
            if fresh is not None:
                credentials = credentials.merge(fresh) if credentials is not None else fresh
        try:
            pairs = self._scan_reader.read(self._snapshot, table, scan, credentials)
        except Exception as e:
            raise ScanError(f"unable to set up scan of {table!r}: {e}") from e
        return pairs.map_partitions(MapEach(convert), preserves_partitioning=True)

    def scan_rows(self, table: str, scan: Scan) -> PartitionedDataset[RowCells]:
        """Scan with the default `(row_key, [(family, qualifier, value), ...])` output."""
        return self.scan(table, scan, row_cells)

    # ---- internal

    def _batch_size(self, batch_size: int | None) -> int:
        return self.config.default_batch_size if batch_size is None else batch_size

    def _bulk_mutation(
        self,
        dataset: PartitionedDataset[T],
        table: str,
        build: Callable[[T], Mutation],
        batch_size: int | None,
    ) -> None:
        op = BulkMutate(table, build, self._batch_size(batch_size), self.config.metrics_enabled)
        self.foreach_partition(dataset, op)

    def _bulk_mutation_with_callback(
        self,
        dataset: PartitionedDataset[T],
        table: str,
        build: Callable[[T], Mutation],
        batch_size: int | None,
        callback: ResultCallback,
    ) -> None:
        op = BulkMutateWithCallback(table, build, self._batch_size(batch_size), callback, self.config.metrics_enabled)
        self.foreach_partition_pooled(dataset, op)

    def _stream_bulk_mutation(
        self,
        stream: DataStream[T],
        table: str,
        build: Callable[[T], Mutation],
        batch_size: int | None,
    ) -> None:
        stream.foreach_batch(_PerBatch(self._bulk_mutation, (table, build, batch_size)))


class _PerBatch:
    """Driver-side stream hook: re-run a batch operation on each arriving dataset."""

    __slots__ = ("_op", "_args")

    def __init__(self, op: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self._op = op
        self._args = args

    def __call__(self, dataset: PartitionedDataset[Any], batch_time: datetime) -> None:
        _log.debug("stream batch", event="stream.batch", op=getattr(self._op, "__name__", "op"), batch_time=str(batch_time))
        self._op(dataset, *self._args)
