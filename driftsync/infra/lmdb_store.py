import threading
from pathlib import Path

import lmdb

from driftsync.core.ports.store import KeyValueStore


class LMDBStore(KeyValueStore):
    """
    Durable KeyValueStore backed by an LMDB environment.

    All keys live in one named database (`keyspace`), so several stores
    can share an environment directory without clashing. Every write is
    its own transaction; LMDB makes it durable when `sync` is enabled.
    """

    def __init__(
        self,
        path: str | Path,
        keyspace: bytes = b"driftsync",
        map_size: int = 1 << 20,
        max_dbs: int = 4,
        sync: bool = True,
        lock: bool = True,
    ) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)
        self._env = lmdb.open(
            str(path),
            map_size=map_size,
            max_dbs=max_dbs,
            lock=lock,
            sync=sync,
        )
        self._keyspace = keyspace
        self._dbi: object | None = None
        self._dbi_lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        dbi = self._get_dbi()
        with self._env.begin(db=dbi, write=False) as txn:
            return txn.get(key.encode("utf-8"))

    def set(self, key: str, value: bytes) -> None:
        dbi = self._get_dbi()
        with self._env.begin(db=dbi, write=True) as txn:
            txn.put(key.encode("utf-8"), value)

    def remove(self, key: str) -> None:
        dbi = self._get_dbi()
        with self._env.begin(db=dbi, write=True) as txn:
            txn.delete(key.encode("utf-8"))

    def close(self) -> None:
        self._dbi = None
        self._env.close()

    def _get_dbi(self) -> object:
        with self._dbi_lock:
            if self._dbi is None:
                self._dbi = self._env.open_db(self._keyspace)
            return self._dbi
