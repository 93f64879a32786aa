"""
Unit tests for the batch buffer and the write-side executors, against the
in-memory store (no dataflow engine involved).
"""

from __future__ import annotations

import math

import pytest
import pytest_asyncio

from storekit.core.errors import BatchSubmissionError
from storekit.executors import (
    AutoFlushPutExecutor,
    Batch,
    BatchedMutationExecutor,
    ConditionalMutationExecutor,
)
from storekit.runtime.pool import ExecutionPool
from tests.helpers import decode_counter
from tests.helpers.builders import (
    CF,
    COL,
    HITS,
    callback_results,
    delete_if_value,
    hits_of,
    put_if_absent,
    record_result,
    to_increment,
    to_put,
)

pytestmark = [pytest.mark.unit]


@pytest_asyncio.fixture
async def table(store, snapshot):
    conn = await store.connect(snapshot)
    t = conn.table("t")
    try:
        yield t
    finally:
        await conn.close()


def test_batch_signals_full_and_drains():
    b: Batch[int] = Batch(3)
    assert b.add(1) is False
    assert b.add(2) is False
    assert b.add(3) is True
    with pytest.raises(OverflowError):
        b.add(4)
    assert b.drain() == [1, 2, 3]
    assert len(b) == 0 and not b


def test_batch_rejects_non_positive_size():
    with pytest.raises(ValueError):
        Batch(0)


@pytest.mark.asyncio
@pytest.mark.parametrize("n,size", [(0, 10), (1, 10), (10, 10), (2500, 1000), (7, 3)])
async def test_flush_count_is_ceil_n_over_b(store, table, n, size):
    ex = BatchedMutationExecutor(table, size)
    stats = await ex.run([bytes(f"r{i:05d}", "ascii") for i in range(n)], to_increment)

    assert stats.flushes == math.ceil(n / size)
    assert store.state.batch_calls == stats.flush_sizes
    assert sum(store.state.batch_calls) == n
    assert all(s == size for s in store.state.batch_calls[:-1])


@pytest.mark.asyncio
async def test_thousand_increments_in_batches_of_hundred(store, table):
    rows = [bytes(f"r{i:04d}", "ascii") for i in range(1000)]
    await BatchedMutationExecutor(table, 100).run(rows, to_increment)

    assert store.state.batch_calls == [100] * 10
    assert store.row_count("t") == 1000


@pytest.mark.asyncio
async def test_batches_keep_record_order(store, table):
    rows = [b"a", b"b", b"c", b"d", b"e"]
    await BatchedMutationExecutor(table, 2).run(rows, to_increment)
    assert store.state.batch_rows == [[b"a", b"b"], [b"c", b"d"], [b"e"]]


@pytest.mark.asyncio
async def test_failed_batch_ends_run_and_keeps_earlier_batches(store, table):
    store.state.fail_batch_call = 2
    rows = [bytes(f"r{i}", "ascii") for i in range(6)]

    with pytest.raises(BatchSubmissionError) as ei:
        await BatchedMutationExecutor(table, 2).run(rows, to_increment)

    assert ei.value.kind == "mutate"
    assert ei.value.size == 2
    # first batch applied, third never attempted
    assert store.state.batch_calls == [2, 2]
    assert decode_counter(store.row("t", b"r0")[(CF, HITS)]) == 1
    assert store.row("t", b"r4") == {}


@pytest.mark.asyncio
async def test_callback_path_delivers_every_result(store, table):
    pool = ExecutionPool(size=2)
    rows = [bytes(f"r{i}", "ascii") for i in range(7)]

    stats = await BatchedMutationExecutor(table, 3, callback=record_result, pool=pool).run(rows, to_increment)

    assert stats.flushes == 3
    assert pool.in_flight == 0
    assert store.state.callback_calls == [3, 3, 1]
    results = callback_results()
    assert sorted(r.row for r in results) == sorted(rows)
    assert all(hits_of(r) == 1 for r in results)


def test_callback_requires_pool():
    with pytest.raises(ValueError):
        BatchedMutationExecutor(object(), 10, callback=record_result)


@pytest.mark.asyncio
async def test_callback_path_failure_surfaces_on_join(store, table):
    store.state.fail_batch_call = 1
    pool = ExecutionPool(size=2)

    with pytest.raises(BatchSubmissionError) as ei:
        await BatchedMutationExecutor(table, 2, callback=record_result, pool=pool).run(
            [b"a", b"b", b"c"], to_increment
        )
    assert ei.value.kind == "mutate_callback"
    await pool.shutdown()


@pytest.mark.asyncio
async def test_conditional_rejection_is_not_an_error(store, table):
    store.seed("t", b"taken", CF, COL, b"old")

    stats = await ConditionalMutationExecutor(table).run([(b"taken", b"new"), (b"free", b"new")], put_if_absent)

    assert stats.operations == 2
    assert stats.rejected == 1
    assert store.row("t", b"taken") == {(CF, COL): b"old"}
    assert store.row("t", b"free") == {(CF, COL): b"new"}


@pytest.mark.asyncio
async def test_conditional_delete_matches_expected_value(store, table):
    store.seed("t", b"k1", CF, COL, b"v1")
    store.seed("t", b"k2", CF, COL, b"v2")

    stats = await ConditionalMutationExecutor(table).run([(b"k1", b"v1"), (b"k2", b"nope")], delete_if_value)

    assert stats.rejected == 1
    assert store.row("t", b"k1") == {}
    assert store.row("t", b"k2") == {(CF, COL): b"v2"}


@pytest.mark.asyncio
async def test_conditional_rejects_plain_mutations(store, table):
    with pytest.raises(TypeError):
        await ConditionalMutationExecutor(table).run([(b"k", b"v")], to_put)


@pytest.mark.asyncio
@pytest.mark.parametrize("auto_flush", [True, False])
async def test_auto_flush_puts_are_all_written(store, table, auto_flush):
    recs = [(bytes(f"k{i}", "ascii"), b"v") for i in range(5)]

    stats = await AutoFlushPutExecutor(table, auto_flush=auto_flush).run(recs, to_put)

    assert store.state.auto_flush == [auto_flush]
    assert store.state.puts == 5
    assert store.state.flush_commits == 1
    assert stats.operations == 5
    assert store.row_count("t") == 5
