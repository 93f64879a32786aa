# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


class Batch(Generic[T]):
    """
    Ordered buffer of pending operations, bounded by `size`.

    `add()` returns True once the buffer is full; the owner must `drain()` it
    before adding more. `drain()` hands over every queued item and leaves the
    buffer empty, so a flush either submits all of them or fails as a whole.
    """

    __slots__ = ("size", "_items")

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError(f"batch size must be >= 1, got {size}")
        self.size = size
        self._items: list[T] = []

    def add(self, item: T) -> bool:
        if len(self._items) >= self.size:
            raise OverflowError("batch is full; drain it before adding")
        self._items.append(item)
        return len(self._items) >= self.size

    def drain(self) -> list[T]:
        items, self._items = self._items, []
        return items

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)


@dataclass
class ExecutorStats:
    """Per-run counters returned by the executors."""

    flushes: int = 0
    operations: int = 0
    rejected: int = 0
    flush_sizes: list[int] = field(default_factory=list)
    flush_ms: float = 0.0

    def record_flush(self, size: int, started: float) -> float:
        """Account one flush started at `started` (perf_counter); return elapsed seconds."""
        elapsed = time.perf_counter() - started
        self.flushes += 1
        self.operations += size
        self.flush_sizes.append(size)
        self.flush_ms += elapsed * 1000.0
        return elapsed
