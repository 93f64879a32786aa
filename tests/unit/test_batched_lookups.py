from __future__ import annotations

import pytest
from prometheus_client import CollectorRegistry

from storekit.core.errors import BatchSubmissionError
from storekit.executors import BatchedLookupExecutor
from storekit.observability.metrics import EngineMetrics
from tests.helpers.builders import CF, COL, cell_value, row_and_value, to_get

pytestmark = [pytest.mark.unit]


async def _seeded_table(store, snapshot, rows: dict[bytes, bytes]):
    for k, v in rows.items():
        store.seed("t", k, CF, COL, v)
    conn = await store.connect(snapshot)
    return conn.table("t")


@pytest.mark.asyncio
async def test_output_follows_input_order_across_batches(store, snapshot):
    table = await _seeded_table(store, snapshot, {b"k1": b"v1", b"k2": b"v2", b"k3": b"v3"})

    out = await BatchedLookupExecutor(table, 2, row_and_value).run([b"k3", b"k1", b"k2"], to_get)

    assert out == [(b"k3", b"v3"), (b"k1", b"v1"), (b"k2", b"v2")]
    assert store.state.get_calls == [[b"k3", b"k1"], [b"k2"]]


@pytest.mark.asyncio
async def test_missing_rows_convert_from_empty_result(store, snapshot):
    table = await _seeded_table(store, snapshot, {b"k1": b"v1"})

    out = await BatchedLookupExecutor(table, 10, cell_value).run([b"k1", b"missing"], to_get)

    assert out == [b"v1", None]
    assert store.state.get_calls == [[b"k1", b"missing"]]


@pytest.mark.asyncio
async def test_empty_partition_issues_no_lookups(store, snapshot):
    table = await _seeded_table(store, snapshot, {})
    assert await BatchedLookupExecutor(table, 5, cell_value).run([], to_get) == []
    assert store.state.get_calls == []


@pytest.mark.asyncio
async def test_failed_lookup_batch_aborts_run(store, snapshot):
    store.state.fail_get_call = 2
    table = await _seeded_table(store, snapshot, {b"a": b"1", b"b": b"2", b"c": b"3"})
    registry = CollectorRegistry()
    metrics = EngineMetrics(registry=registry)

    with pytest.raises(BatchSubmissionError) as ei:
        await BatchedLookupExecutor(table, 2, cell_value, metrics=metrics).run([b"a", b"b", b"c"], to_get)

    assert ei.value.kind == "lookup"
    assert ei.value.size == 1
    assert registry.get_sample_value("storekit_failures_total", {"kind": "lookup"}) == 1.0
    assert registry.get_sample_value("storekit_flushes_total", {"kind": "lookup"}) == 1.0


@pytest.mark.asyncio
async def test_result_count_mismatch_is_a_batch_failure(snapshot):
    class ShortTable:
        name = "short"

        async def get(self, gets):
            return []

    registry = CollectorRegistry()
    metrics = EngineMetrics(registry=registry)

    with pytest.raises(BatchSubmissionError, match="0 result"):
        await BatchedLookupExecutor(ShortTable(), 3, cell_value, metrics=metrics).run([b"a"], to_get)
    assert registry.get_sample_value("storekit_failures_total", {"kind": "lookup"}) == 1.0
