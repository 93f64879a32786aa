# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Dataflow engine boundary.

storekit does not schedule, partition or re-execute anything. It needs four
things from the engine that runs the job:

- a broadcast primitive that ships an immutable value to every worker once,
- the submitting user's current credentials on the driver,
- partition iteration over a dataset (foreach / map),
- per-batch iteration over a stream.

Partition functions handed to the engine are plain synchronous callables that
take the partition's record iterator; they must be picklable.
"""

from collections.abc import Callable, Iterable, Iterator
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from .snapshot import CredentialBundle

T = TypeVar("T")
U = TypeVar("U")
T_co = TypeVar("T_co", covariant=True)

ForeachPartitionFn = Callable[[Iterator[T]], None]
MapPartitionFn = Callable[[Iterator[T]], Iterable[U]]

__all__ = [
    "Broadcast",
    "DataflowEngine",
    "PartitionedDataset",
    "DataStream",
    "ForeachPartitionFn",
    "MapPartitionFn",
]


@runtime_checkable
class Broadcast(Protocol[T_co]):
    """Read-only handle on a value broadcast to all workers."""

    @property
    def value(self) -> T_co: ...


@runtime_checkable
class PartitionedDataset(Protocol[T]):
    def foreach_partition(self, fn: ForeachPartitionFn[T]) -> None: ...

    def map_partitions(
        self, fn: MapPartitionFn[T, Any], *, preserves_partitioning: bool = True
    ) -> PartitionedDataset[Any]: ...


@runtime_checkable
class DataStream(Protocol[T]):
    """A continuous input delivered as a sequence of partitioned batches."""

    def foreach_batch(self, fn: Callable[[PartitionedDataset[T], datetime], None]) -> None: ...

    def map_partitions(
        self, fn: MapPartitionFn[T, Any], *, preserves_partitioning: bool = True
    ) -> DataStream[Any]: ...


@runtime_checkable
class DataflowEngine(Protocol):
    def broadcast(self, value: T) -> Broadcast[T]: ...

    def current_user_credentials(self) -> CredentialBundle | None:
        """Credentials of the submitting user in the driver process (None when unsecured)."""
        ...
