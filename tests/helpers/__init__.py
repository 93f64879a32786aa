from .engine import LocalBroadcast, LocalDataset, LocalEngine, LocalStream, LocalTableReader, ship
from .inmemory_store import InMemStore, decode_counter, encode_counter, reset_stores
from .util import dbg

__all__ = [
    "InMemStore",
    "LocalBroadcast",
    "LocalDataset",
    "LocalEngine",
    "LocalStream",
    "LocalTableReader",
    "dbg",
    "decode_counter",
    "encode_counter",
    "reset_stores",
    "ship",
]
