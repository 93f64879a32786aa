from __future__ import annotations

import pytest

from storekit import ConfigurationUnavailableError, ScanError, StoreContext
from storekit.snapshot import ConfigurationSnapshot, CredentialBundle
from storekit.store.types import Scan
from tests.helpers import LocalTableReader
from tests.helpers.builders import CF, COL, count_records, key_only
from tests.helpers.util import events

pytestmark = [pytest.mark.integration]

SCAN_TOKENS = CredentialBundle(tokens={"HBASE_AUTH_TOKEN": "tok-scan"})


def scan_tokens(snapshot):
    return SCAN_TOKENS


@pytest.fixture
def seeded(store):
    for r, v in [(b"a", b"1"), (b"b", b"2"), (b"c", b"3"), (b"d", b"4")]:
        store.seed("t", r, CF, COL, v)
    return store


def test_scan_rows_default_shape(engine, seeded, snapshot):
    reader = LocalTableReader(seeded)
    ctx = StoreContext(engine, seeded, snapshot, scan_reader=reader)

    rows = ctx.scan_rows("t", Scan(start_row=b"b", stop_row=b"d")).collect()

    assert rows == [(b"b", [(CF, COL, b"2")]), (b"c", [(CF, COL, b"3")])]


def test_scan_with_converter_and_credentials(engine, seeded, snapshot, user_credentials):
    reader = LocalTableReader(seeded)
    ctx = StoreContext(engine, seeded, snapshot, scan_reader=reader, credentials_init=scan_tokens)

    keys = ctx.scan("t", Scan(), key_only).collect()

    assert keys == [b"a", b"b", b"c", b"d"]
    _, _, creds = reader.calls[0]
    assert creds.tokens == {**user_credentials.tokens, **SCAN_TOKENS.tokens}


def test_scan_without_reader_is_rejected(engine, store, snapshot):
    with pytest.raises(ScanError):
        StoreContext(engine, store, snapshot).scan_rows("t", Scan())


def test_scan_reader_failure_is_wrapped(engine, store, snapshot):
    class BrokenReader:
        def read(self, snapshot, table, scan, credentials):
            raise PermissionError("table not found or not readable")

    ctx = StoreContext(engine, store, snapshot, scan_reader=BrokenReader())
    with pytest.raises(ScanError, match="not readable"):
        ctx.scan_rows("t", Scan())


def test_context_persists_snapshot_for_workers(tmp_path, engine, store, snapshot):
    path = tmp_path / "job" / "snapshot.json"
    StoreContext(engine, store, snapshot, tmp_config_path=str(path))
    assert ConfigurationSnapshot.loads(path.read_bytes()) == snapshot


def test_existing_persisted_snapshot_is_kept(tmp_path, engine, store, snapshot, caplog):
    path = tmp_path / "snapshot.json"
    older = ConfigurationSnapshot(cluster_addresses=("older.zk",))
    path.write_bytes(older.dumps())

    ctx = StoreContext(engine, store, snapshot, tmp_config_path=str(path))

    assert ConfigurationSnapshot.loads(path.read_bytes()) == older
    assert events(caplog, "config.persist.exists")

    # workers read the file first, so they connect with the older snapshot
    ctx.foreach_partition(engine.parallelize([1]), count_records)
    assert store.state.seen_snapshots == [older]


def test_workers_fall_back_to_persisted_snapshot(tmp_path, engine, store, snapshot):
    path = tmp_path / "snapshot.json"
    ctx = StoreContext(engine, store, snapshot, tmp_config_path=str(path))
    ctx.environment.snapshot.fail = RuntimeError("broadcast lost")

    ctx.foreach_partition(engine.parallelize([1, 2], partitions=2), count_records)

    assert store.state.seen_snapshots == [snapshot, snapshot]


def test_unresolvable_snapshot_fails_at_connection_time(engine, store, snapshot):
    ctx = StoreContext(engine, store, snapshot)
    ctx.environment.snapshot.fail = RuntimeError("broadcast lost")

    with pytest.raises(ConfigurationUnavailableError):
        ctx.foreach_partition(engine.parallelize([1]), count_records)
    assert store.state.connects == 0
