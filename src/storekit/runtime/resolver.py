# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Worker-side resolution of the configuration snapshot.

Resolution order, first success wins:
  1. the snapshot already cached in this process,
  2. the persisted fallback file (`tmp_config_path`), when configured,
  3. the broadcast value delivered with the task.

Resolution never raises: a transient read failure on the fallback file must
not abort the whole job. When nothing resolves, `resolve()` returns None and
the connection scope reports the fault at first use.
"""

from pathlib import Path

from pydantic import ValidationError

from ..core.log import get_logger
from ..dataflow import Broadcast
from ..snapshot import ConfigurationSnapshot
from .context import ProcessContext

__all__ = ["ConfigurationResolver", "read_persisted_snapshot", "write_persisted_snapshot"]

_log = get_logger("runtime.resolver")


def read_persisted_snapshot(path: str | Path) -> ConfigurationSnapshot:
    return ConfigurationSnapshot.loads(Path(path).read_bytes())


def write_persisted_snapshot(path: str | Path, snapshot: ConfigurationSnapshot) -> bool:
    """
    Stage `snapshot` at `path` unless something is already there.

    Returns False (and logs a warning) when the path has content; it is never overwritten.
    """
    p = Path(path)
    if p.exists():
        _log.warning(
            "persisted config path already exists; leaving it untouched",
            event="config.persist.exists",
            path=str(p),
        )
        return False
    p.parent.mkdir(parents=True, exist_ok=True)
    try:
        # exclusive create: a concurrent writer loses instead of clobbering
        with p.open("xb") as fh:
            fh.write(snapshot.dumps())
    except FileExistsError:
        _log.warning(
            "persisted config path appeared concurrently; leaving it untouched",
            event="config.persist.exists",
            path=str(p),
        )
        return False
    _log.info("configuration snapshot persisted", event="config.persist.written", path=str(p))
    return True


class ConfigurationResolver:
    """Resolve the snapshot once per process and serve the cached copy afterwards."""

    def __init__(
        self,
        *,
        broadcast: Broadcast[ConfigurationSnapshot] | None,
        persisted_path: str | Path | None = None,
        context: ProcessContext | None = None,
    ) -> None:
        self._broadcast = broadcast
        self._persisted_path = Path(persisted_path) if persisted_path else None
        self._ctx = context or ProcessContext.current()

    @property
    def context(self) -> ProcessContext:
        return self._ctx

    def resolve(self) -> ConfigurationSnapshot | None:
        cached = self._ctx.snapshot
        if cached is not None:
            return cached

        with self._ctx.lock:
            # another partition task may have won while we waited
            if self._ctx.snapshot is not None:
                return self._ctx.snapshot

            snapshot = self._from_persisted()
            source = "persisted"
            if snapshot is None:
                snapshot = self._from_broadcast()
                source = "broadcast"

            if snapshot is None:
                _log.warning(
                    "unable to resolve configuration snapshot from any source",
                    event="config.resolve.failed",
                    persisted_path=str(self._persisted_path) if self._persisted_path else None,
                )
                return None

            self._ctx.snapshot = snapshot
            _log.debug("configuration snapshot resolved", event="config.resolve.ok", source=source)
            return snapshot

    # ---- tiers

    def _from_persisted(self) -> ConfigurationSnapshot | None:
        if self._persisted_path is None:
            return None
        try:
            return read_persisted_snapshot(self._persisted_path)
        except (OSError, ValidationError) as e:
            _log.warning(
                "unable to read persisted configuration; falling back to broadcast",
                event="config.resolve.persisted_failed",
                path=str(self._persisted_path),
                error=str(e),
            )
            return None

    def _from_broadcast(self) -> ConfigurationSnapshot | None:
        if self._broadcast is None:
            return None
        try:
            return self._broadcast.value
        except Exception as e:
            # broadcast fetch failures are engine-specific; any of them only defers the fault
            _log.warning(
                "unable to get configuration from broadcast",
                event="config.resolve.broadcast_failed",
                error=str(e),
            )
            return None
