# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Per-process engine state.

Every partition task of one StoreContext running in a worker process shares
one ProcessContext: the resolved configuration snapshot and the
credential-injection guard. Both are written at most once and read many times;
writes go through `lock` so that concurrently running partition tasks cannot
race between check and set.

Contexts are keyed by (pid, context_id). Two StoreContexts whose tasks land in
the same process never see each other's snapshot or guard, and a forked worker
starts from fresh contexts instead of inheriting the parent's.
"""

import os
import threading
from dataclasses import dataclass, field

from ..snapshot import ConfigurationSnapshot

__all__ = ["ProcessContext"]

DEFAULT_CONTEXT_ID = ""


@dataclass(eq=False)
class ProcessContext:
    pid: int = field(default_factory=os.getpid)
    context_id: str = DEFAULT_CONTEXT_ID
    snapshot: ConfigurationSnapshot | None = None
    credentials_applied: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @classmethod
    def current(cls, context_id: str = DEFAULT_CONTEXT_ID) -> ProcessContext:
        """Return this process's context for `context_id`, creating it on first use."""
        pid = os.getpid()
        with _REGISTRY_LOCK:
            ctx = _REGISTRY.get((pid, context_id))
            if ctx is None:
                # entries inherited across fork belong to another pid
                for key in [k for k in _REGISTRY if k[0] != pid]:
                    del _REGISTRY[key]
                ctx = cls(pid=pid, context_id=context_id)
                _REGISTRY[(pid, context_id)] = ctx
            return ctx

    @classmethod
    def reset_current(cls, context_id: str | None = None) -> None:
        """Drop this process's context for `context_id`, or all of them when None."""
        pid = os.getpid()
        with _REGISTRY_LOCK:
            if context_id is not None:
                _REGISTRY.pop((pid, context_id), None)
                return
            for key in [k for k in _REGISTRY if k[0] == pid]:
                del _REGISTRY[key]


_REGISTRY: dict[tuple[int, str], ProcessContext] = {}
_REGISTRY_LOCK = threading.Lock()
