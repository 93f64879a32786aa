# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Store client boundary (driver-agnostic).

storekit consumes these interfaces; it does not implement the wire protocol,
table metadata or region routing. A concrete client adapts its native driver
to them. Timeouts and store-side retry/backoff belong to the client as well.
"""

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .types import Delete, Get, Mutation, Put, Result

if TYPE_CHECKING:
    from ..runtime.pool import ExecutionPool
    from ..snapshot import ConfigurationSnapshot

__all__ = [
    "ResultCallback",
    "Table",
    "Connection",
    "StoreClient",
]

ResultCallback = Callable[[Result], None]


@runtime_checkable
class Table(Protocol):
    """
    Handle on one table, borrowed from a Connection.

    Notes:
        - `batch` submits the whole list as one request and waits for all outcomes.
        - `batch_callback` invokes `callback` once per mutation as its outcome
          resolves; invocation order is not guaranteed to match submission order.
        - `check_and_*` return False when the condition is not met; that is a
          normal outcome, not an error.
    """

    name: str

    async def put(self, put: Put) -> None: ...
    async def set_auto_flush(self, enabled: bool) -> None: ...
    async def flush_commits(self) -> None: ...

    async def batch(self, mutations: Sequence[Mutation]) -> list[Result]: ...
    async def batch_callback(self, mutations: Sequence[Mutation], callback: ResultCallback) -> None: ...

    async def get(self, gets: Sequence[Get]) -> list[Result]:
        """Multi-row lookup. Results come back in request order."""
        ...

    async def check_and_put(
        self, row: bytes, family: bytes, qualifier: bytes, expected: bytes | None, put: Put
    ) -> bool: ...

    async def check_and_delete(
        self, row: bytes, family: bytes, qualifier: bytes, expected: bytes | None, delete: Delete
    ) -> bool: ...

    async def close(self) -> None: ...


@runtime_checkable
class Connection(Protocol):
    """Live connection to the store. Owned by exactly one connection scope."""

    @property
    def closed(self) -> bool: ...

    def table(self, name: str) -> Table: ...
    async def close(self) -> None: ...


@runtime_checkable
class StoreClient(Protocol):
    """Factory for connections."""

    async def connect(
        self,
        snapshot: ConfigurationSnapshot,
        *,
        pool: ExecutionPool | None = None,
    ) -> Connection:
        """
        Open a connection described by `snapshot`.

        When `pool` is given, the client may use it for asynchronous callback
        delivery; storekit owns and shuts the pool down.
        """
        ...
