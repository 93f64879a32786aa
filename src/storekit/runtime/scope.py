# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Connection scopes: one store connection per partition task.

Callers get the connection only inside `async with`; they must not keep it
or close it. Release happens in `finally`, so it runs on normal return, on a
raised error and on cancellation of the partition coroutine.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from ..core.config import DEFAULT_CALLBACK_POOL_SIZE
from ..core.errors import ConfigurationUnavailableError, ConnectionAcquisitionError
from ..core.log import get_logger
from ..snapshot import ConfigurationSnapshot
from ..store.client import Connection, StoreClient, Table
from .pool import ExecutionPool

__all__ = ["PooledConnection", "connection_scope", "pooled_connection_scope"]

_log = get_logger("runtime.scope")


@dataclass
class PooledConnection:
    """A connection paired with the execution pool used for callback submissions."""

    connection: Connection
    pool: ExecutionPool

    @property
    def closed(self) -> bool:
        return self.connection.closed

    def table(self, name: str) -> Table:
        return self.connection.table(name)


async def _open(client: StoreClient, snapshot: ConfigurationSnapshot | None, pool: ExecutionPool | None) -> Connection:
    if snapshot is None:
        raise ConfigurationUnavailableError()
    try:
        return await client.connect(snapshot, pool=pool)
    except Exception as e:
        raise ConnectionAcquisitionError(f"unable to connect to {snapshot.quorum}: {e}") from e


async def _close(conn: Connection) -> None:
    try:
        await conn.close()
    finally:
        _log.debug("connection closed", event="scope.close")


@asynccontextmanager
async def connection_scope(
    client: StoreClient, snapshot: ConfigurationSnapshot | None
) -> AsyncIterator[Connection]:
    """Lightweight scope used by foreach/map and plain batched mutate/get."""
    conn = await _open(client, snapshot, None)
    _log.debug("connection opened", event="scope.open", pooled=False)
    try:
        yield conn
    finally:
        await _close(conn)


@asynccontextmanager
async def pooled_connection_scope(
    client: StoreClient,
    snapshot: ConfigurationSnapshot | None,
    *,
    pool_size: int = DEFAULT_CALLBACK_POOL_SIZE,
) -> AsyncIterator[PooledConnection]:
    """
    Scope for the callback-bearing mutation path.

    The pool lives exactly as long as the connection. On normal exit every
    in-flight submission is joined before the connection closes; on error or
    cancellation outstanding submissions are cancelled, then the connection
    closes.
    """
    pool = ExecutionPool(size=pool_size)
    try:
        conn = await _open(client, snapshot, pool)
    except BaseException:
        await pool.shutdown()
        raise
    _log.debug("connection opened", event="scope.open", pooled=True, pool_size=pool_size)
    try:
        yield PooledConnection(connection=conn, pool=pool)
        await pool.join()
    finally:
        try:
            await pool.shutdown()
        finally:
            await _close(conn)
