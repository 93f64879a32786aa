# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Batching executors that run inside a connection scope.
"""

from .batch import Batch, ExecutorStats
from .lookups import BatchedLookupExecutor
from .mutations import AutoFlushPutExecutor, BatchedMutationExecutor, ConditionalMutationExecutor

__all__ = [
    "Batch",
    "ExecutorStats",
    "AutoFlushPutExecutor",
    "BatchedMutationExecutor",
    "ConditionalMutationExecutor",
    "BatchedLookupExecutor",
]
