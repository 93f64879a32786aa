from datetime import UTC, datetime


def _ts() -> str:
    return datetime.now(UTC).strftime("%H:%M:%S.%f")[:-3]


def dbg(tag: str, **kv):
    kvs = " ".join(f"{k}={kv[k]!r}" for k in kv)
    print(f"[{_ts()}] {tag}: {kvs}", flush=True)


def events(caplog, name: str) -> list:
    """Log records carrying `event=name` (structured kwargs land on the record)."""
    return [r for r in caplog.records if getattr(r, "event", None) == name]
