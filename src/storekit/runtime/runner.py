# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
PartitionTaskRunner: the single choke point every bulk operation goes through.

Per partition, in order:
    resolve configuration → inject credentials → open connection scope
    → run the user function over the partition's records → close scope.
"""

import time
import uuid
from collections.abc import Awaitable, Callable, Iterable, Iterator
from typing import Any, TypeVar

from ..core.config import EngineConfig
from ..core.log import get_logger, log_context
from ..dataflow import Broadcast
from ..observability.metrics import EngineMetrics
from ..observability.tracing import span
from ..snapshot import CredentialBundle
from ..store.client import Connection, StoreClient
from .credentials import CredentialInjector
from .resolver import ConfigurationResolver
from .scope import PooledConnection, connection_scope, pooled_connection_scope

T = TypeVar("T")
U = TypeVar("U")

ForeachFn = Callable[[Iterator[T], Connection], Awaitable[None]]
MapFn = Callable[[Iterator[T], Connection], Awaitable[Iterable[U]]]
PooledForeachFn = Callable[[Iterator[T], PooledConnection], Awaitable[None]]

__all__ = ["PartitionTaskRunner", "ForeachFn", "MapFn", "PooledForeachFn"]

_log = get_logger("runtime.runner")


class PartitionTaskRunner:
    """
    Executes one partition's worth of work against the store.

    Args:
        client: store client used to open the connection.
        resolver: worker-side configuration resolver.
        injector: once-per-process credential injector.
        task_credentials: broadcast bundle acquired while preparing store access.
        config: engine settings (pool size, pooled-path credential policy).
        metrics: optional EngineMetrics sink.
    """

    def __init__(
        self,
        client: StoreClient,
        *,
        resolver: ConfigurationResolver,
        injector: CredentialInjector,
        task_credentials: Broadcast[CredentialBundle | None] | None = None,
        config: EngineConfig | None = None,
        metrics: EngineMetrics | None = None,
    ) -> None:
        self._client = client
        self._resolver = resolver
        self._injector = injector
        self._task_credentials = task_credentials
        self._config = config or EngineConfig()
        self._metrics = metrics

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def metrics(self) -> EngineMetrics | None:
        return self._metrics

    async def foreach(self, records: Iterator[T], fn: ForeachFn[T], *, partition_id: str | None = None) -> None:
        """Foreach-shaped partition: no output."""
        pid = partition_id or _new_partition_id()
        with log_context(partition_id=pid), span("storekit.partition", shape="foreach", partition=pid):
            started = self._started("foreach")
            try:
                snapshot = self._resolver.resolve()
                self._inject()
                async with connection_scope(self._client, snapshot) as conn:
                    await fn(records, conn)
            except BaseException as e:
                self._failed("foreach", e)
                raise
            self._finished("foreach", started)

    async def map(self, records: Iterator[T], fn: MapFn[T, U], *, partition_id: str | None = None) -> list[U]:
        """
        Map-shaped partition: the user function's output becomes the task output.

        The output is materialized inside the scope, so nothing produced by the
        user function can touch the connection after it is closed.
        """
        pid = partition_id or _new_partition_id()
        with log_context(partition_id=pid), span("storekit.partition", shape="map", partition=pid):
            started = self._started("map")
            try:
                snapshot = self._resolver.resolve()
                self._inject()
                async with connection_scope(self._client, snapshot) as conn:
                    out = list(await fn(records, conn))
            except BaseException as e:
                self._failed("map", e)
                raise
            self._finished("map", started, produced=len(out))
            return out

    async def foreach_pooled(
        self, records: Iterator[T], fn: PooledForeachFn[T], *, partition_id: str | None = None
    ) -> None:
        """Callback path: connection equipped with an execution pool."""
        pid = partition_id or _new_partition_id()
        with log_context(partition_id=pid), span("storekit.partition", shape="pooled", partition=pid):
            started = self._started("pooled")
            try:
                snapshot = self._resolver.resolve()
                if self._config.inject_credentials_on_pooled_path:
                    self._inject()
                async with pooled_connection_scope(
                    self._client, snapshot, pool_size=self._config.callback_pool_size
                ) as conn:
                    await fn(records, conn)
            except BaseException as e:
                self._failed("pooled", e)
                raise
            self._finished("pooled", started)

    # ---- internal

    def _inject(self) -> None:
        bundle = self._task_credentials.value if self._task_credentials is not None else None
        self._injector.apply_once(bundle)

    def _started(self, shape: str) -> float:
        _log.debug("partition started", event="partition.start", shape=shape)
        return time.perf_counter()

    def _finished(self, shape: str, started: float, **extra: Any) -> None:
        _log.info(
            "partition finished",
            event="partition.finish",
            shape=shape,
            duration_ms=round((time.perf_counter() - started) * 1000.0, 3),
            **extra,
        )

    def _failed(self, shape: str, exc: BaseException) -> None:
        if self._metrics is not None:
            self._metrics.observe_failure("partition")
        _log.error(
            "partition failed",
            event="partition.failed",
            shape=shape,
            error_type=type(exc).__name__,
            error=str(exc),
        )


def _new_partition_id() -> str:
    return uuid.uuid4().hex[:12]
