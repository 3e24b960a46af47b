from driftsync.core.ports.store import KeyValueStore


class InMemoryStore(KeyValueStore):
    """
    Process-local KeyValueStore.

    Nothing survives the process; useful for tests and for clocks whose
    causality only needs to hold for the lifetime of one process.
    """

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def close(self) -> None:
        self._data.clear()
