# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Record-level operations understood by a keyed, column-family store.

These are plain frozen dataclasses: user functions build them from records,
executors queue them into batches, and the store client turns them into wire
requests. Row keys, families, qualifiers and values are all `bytes`.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class Cell:
    family: bytes
    qualifier: bytes
    value: bytes
    timestamp: int | None = None

    def as_triple(self) -> tuple[bytes, bytes, bytes]:
        return self.family, self.qualifier, self.value


@dataclass(frozen=True)
class Put:
    """Write one or more cells into a row."""

    row: bytes
    cells: tuple[Cell, ...] = ()

    def add(self, family: bytes, qualifier: bytes, value: bytes, timestamp: int | None = None) -> Put:
        return Put(self.row, self.cells + (Cell(family, qualifier, value, timestamp),))


@dataclass(frozen=True)
class Delete:
    """
    Delete a whole row, or only the listed columns.

    `columns` entries are (family, qualifier); a qualifier of None drops the whole family.
    """

    row: bytes
    columns: tuple[tuple[bytes, bytes | None], ...] = ()


@dataclass(frozen=True)
class Increment:
    """Atomically add `amount` to each listed counter column of a row."""

    row: bytes
    amounts: tuple[tuple[bytes, bytes, int], ...] = ()

    def add(self, family: bytes, qualifier: bytes, amount: int = 1) -> Increment:
        return Increment(self.row, self.amounts + ((family, qualifier, amount),))


Mutation = Union[Put, Delete, Increment]


@dataclass(frozen=True)
class Get:
    """Point lookup of one row, optionally restricted to some columns."""

    row: bytes
    columns: tuple[tuple[bytes, bytes | None], ...] = ()
    max_versions: int = 1


@dataclass(frozen=True)
class CheckAndPut:
    """
    Apply `put` only if row/family/qualifier currently holds `expected`.

    `expected=None` means "the cell must not exist".
    """

    row: bytes
    family: bytes
    qualifier: bytes
    expected: bytes | None
    put: Put


@dataclass(frozen=True)
class CheckAndDelete:
    """Apply `delete` only if row/family/qualifier currently holds `expected`."""

    row: bytes
    family: bytes
    qualifier: bytes
    expected: bytes | None
    delete: Delete


ConditionalMutation = Union[CheckAndPut, CheckAndDelete]


@dataclass(frozen=True)
class Scan:
    """Range read handed to the delegated table reader."""

    start_row: bytes | None = None
    stop_row: bytes | None = None
    columns: tuple[tuple[bytes, bytes | None], ...] = ()
    caching: int = 100
    attributes: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Result:
    """
    Outcome of a read or of one mutation in a batch.

    An empty result (no row, no cells) is what a lookup of a missing row returns.
    """

    row: bytes | None = None
    cells: tuple[Cell, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.cells

    def value(self, family: bytes, qualifier: bytes) -> bytes | None:
        for c in self.cells:
            if c.family == family and c.qualifier == qualifier:
                return c.value
        return None

    def __iter__(self) -> Iterator[Cell]:
        return iter(self.cells)

    def __len__(self) -> int:
        return len(self.cells)
