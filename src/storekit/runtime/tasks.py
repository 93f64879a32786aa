# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Picklable partition tasks handed to the dataflow engine.

The engine serializes a task on the driver and calls it on a worker with the
partition's record iterator. Everything process-specific (resolved snapshot,
credential guard, metrics) is looked up on the worker at call time, never
shipped from the driver.
"""

import asyncio
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from ..core.config import EngineConfig
from ..dataflow import Broadcast
from ..observability.metrics import engine_metrics
from ..snapshot import ConfigurationSnapshot, CredentialBundle
from ..store.client import StoreClient
from .context import ProcessContext
from .credentials import CredentialInjector
from .resolver import ConfigurationResolver
from .runner import ForeachFn, MapFn, PartitionTaskRunner, PooledForeachFn

T = TypeVar("T")
U = TypeVar("U")

__all__ = [
    "TaskEnvironment",
    "ForeachPartitionTask",
    "MapPartitionTask",
    "PooledForeachPartitionTask",
]


@dataclass(frozen=True)
class TaskEnvironment:
    """
    What every partition task carries from the driver.

    Fields:
        client: store client (must be picklable; connections are opened on the worker).
        snapshot: broadcast configuration snapshot.
        engine_credentials: broadcast of the driver's user credentials at construction.
        task_credentials: broadcast of the bundle acquired while preparing store access.
        config: engine settings, including `tmp_config_path`.
        context_id: keys the worker-side ProcessContext; unique per StoreContext.
    """

    client: StoreClient
    snapshot: Broadcast[ConfigurationSnapshot]
    engine_credentials: Broadcast[CredentialBundle | None]
    task_credentials: Broadcast[CredentialBundle | None]
    config: EngineConfig
    context_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def runner(self, context: ProcessContext | None = None) -> PartitionTaskRunner:
        ctx = context or ProcessContext.current(self.context_id)
        resolver = ConfigurationResolver(
            broadcast=self.snapshot,
            persisted_path=self.config.tmp_config_path,
            context=ctx,
        )
        injector = CredentialInjector(lambda: self.engine_credentials.value, context=ctx)
        return PartitionTaskRunner(
            self.client,
            resolver=resolver,
            injector=injector,
            task_credentials=self.task_credentials,
            config=self.config,
            metrics=engine_metrics() if self.config.metrics_enabled else None,
        )


@dataclass(frozen=True)
class ForeachPartitionTask(Generic[T]):
    env: TaskEnvironment
    fn: ForeachFn[T]

    def __call__(self, records: Iterable[T]) -> None:
        asyncio.run(self.env.runner().foreach(iter(records), self.fn))


@dataclass(frozen=True)
class MapPartitionTask(Generic[T, U]):
    env: TaskEnvironment
    fn: MapFn[T, U]

    def __call__(self, records: Iterable[T]) -> list[U]:
        return asyncio.run(self.env.runner().map(iter(records), self.fn))


@dataclass(frozen=True)
class PooledForeachPartitionTask(Generic[T]):
    env: TaskEnvironment
    fn: PooledForeachFn[T]

    def __call__(self, records: Iterable[T]) -> None:
        asyncio.run(self.env.runner().foreach_pooled(iter(records), self.fn))
