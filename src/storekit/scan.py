# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Delegated full-table scans.

storekit does not execute scans. A TableInputReader (typically the store's
native input-format integration for the dataflow engine) produces a dataset
of `(row_key, Result)` pairs; storekit only configures it and maps the pairs
into the caller's shape.
"""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar, runtime_checkable

from .dataflow import PartitionedDataset
from .snapshot import ConfigurationSnapshot, CredentialBundle
from .store.types import Result, Scan

U = TypeVar("U")

RowCells = tuple[bytes, list[tuple[bytes, bytes, bytes]]]
CredentialsInit = Callable[[ConfigurationSnapshot], "CredentialBundle | None"]

__all__ = [
    "CredentialsInit",
    "MapEach",
    "RowCells",
    "TableInputReader",
    "row_cells",
]


@runtime_checkable
class TableInputReader(Protocol):
    def read(
        self,
        snapshot: ConfigurationSnapshot,
        table: str,
        scan: Scan,
        credentials: CredentialBundle | None,
    ) -> PartitionedDataset[tuple[bytes, Result]]: ...


def row_cells(pair: tuple[bytes, Result]) -> RowCells:
    """Default scan output shape: (row key, [(family, qualifier, value), ...])."""
    key, result = pair
    return bytes(key), [c.as_triple() for c in result.cells]


@dataclass(frozen=True)
class MapEach(Generic[U]):
    """Picklable per-record map usable as a map-partitions function."""

    fn: Callable[[tuple[bytes, Result]], U]

    def __call__(self, records: Iterator[tuple[bytes, Result]]) -> Iterable[U]:
        return (self.fn(r) for r in records)
