"""
Module-level record builders and callbacks.

Partition tasks are pickled by reference, so anything a test hands to a bulk
operation has to live at module level.
"""

from __future__ import annotations

import threading

from storekit.store.types import CheckAndDelete, CheckAndPut, Delete, Get, Increment, Put, Result

from .inmemory_store import decode_counter

CF = b"cf"
COL = b"c"
HITS = b"hits"

_CALLBACK_RESULTS: list[Result] = []
_CALLBACK_LOCK = threading.Lock()


def to_put(rec: tuple[bytes, bytes]) -> Put:
    row, value = rec
    return Put(row).add(CF, COL, value)


def to_increment(row: bytes) -> Increment:
    return Increment(row).add(CF, HITS, 1)


def to_delete(row: bytes) -> Delete:
    return Delete(row)


def to_get(row: bytes) -> Get:
    return Get(row)


def cell_value(result: Result) -> bytes | None:
    return result.value(CF, COL)


def row_and_value(result: Result) -> tuple[bytes | None, bytes | None]:
    return result.row, result.value(CF, COL)


def hits_of(result: Result) -> int:
    return decode_counter(result.value(CF, HITS))


def put_if_absent(rec: tuple[bytes, bytes]) -> CheckAndPut:
    row, value = rec
    return CheckAndPut(row, CF, COL, None, Put(row).add(CF, COL, value))


def delete_if_value(rec: tuple[bytes, bytes]) -> CheckAndDelete:
    row, expected = rec
    return CheckAndDelete(row, CF, COL, expected, Delete(row))


def key_only(pair: tuple[bytes, Result]) -> bytes:
    return pair[0]


def record_result(result: Result) -> None:
    with _CALLBACK_LOCK:
        _CALLBACK_RESULTS.append(result)


def callback_results() -> list[Result]:
    with _CALLBACK_LOCK:
        return list(_CALLBACK_RESULTS)


def reset_callback_results() -> None:
    with _CALLBACK_LOCK:
        _CALLBACK_RESULTS.clear()


async def count_records(records, conn) -> None:
    # connection stays open for the whole partition
    assert not conn.closed
    for _ in records:
        pass


async def row_counts(records, conn) -> list[int]:
    return [sum(1 for _ in records)]


async def explode(records, conn) -> None:
    raise RuntimeError("user function failed")
