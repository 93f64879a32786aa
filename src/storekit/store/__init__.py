# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Store-side types and the client interfaces storekit consumes.
"""

from .client import Connection, ResultCallback, StoreClient, Table
from .types import (
    Cell,
    CheckAndDelete,
    CheckAndPut,
    ConditionalMutation,
    Delete,
    Get,
    Increment,
    Mutation,
    Put,
    Result,
    Scan,
)

__all__ = [
    # client
    "Connection",
    "ResultCallback",
    "StoreClient",
    "Table",
    # operations
    "Cell",
    "Put",
    "Delete",
    "Increment",
    "Mutation",
    "Get",
    "CheckAndPut",
    "CheckAndDelete",
    "ConditionalMutation",
    "Scan",
    "Result",
]
