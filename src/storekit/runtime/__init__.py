# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Worker-side partition execution: configuration resolution, credential
injection, connection scopes and the partition task runner.
"""

from .context import ProcessContext
from .credentials import (
    AmbientIdentity,
    AuthenticationMethod,
    CredentialInjector,
    ProcessIdentity,
    process_identity,
)
from .pool import ExecutionPool
from .resolver import ConfigurationResolver, read_persisted_snapshot, write_persisted_snapshot
from .runner import PartitionTaskRunner
from .scope import PooledConnection, connection_scope, pooled_connection_scope
from .tasks import ForeachPartitionTask, MapPartitionTask, PooledForeachPartitionTask, TaskEnvironment

__all__ = [
    "ProcessContext",
    "AmbientIdentity",
    "AuthenticationMethod",
    "CredentialInjector",
    "ProcessIdentity",
    "process_identity",
    "ExecutionPool",
    "ConfigurationResolver",
    "read_persisted_snapshot",
    "write_persisted_snapshot",
    "PartitionTaskRunner",
    "PooledConnection",
    "connection_scope",
    "pooled_connection_scope",
    "TaskEnvironment",
    "ForeachPartitionTask",
    "MapPartitionTask",
    "PooledForeachPartitionTask",
]
