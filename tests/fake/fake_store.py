from driftsync.core.ports.store import KeyValueStore


class StoreUnavailable(OSError):
    pass


class FakeStore(KeyValueStore):
    """
    A simple in-memory store for testing.
    Every operation can be switched to fail to exercise the best-effort
    persistence paths.
    """

    def __init__(self):
        self._data: dict[str, bytes] = {}
        self.get_calls = 0
        self.set_calls = 0
        self.remove_calls = 0
        self.fail_get = False
        self.fail_set = False
        self.fail_remove = False

    def get(self, key: str) -> bytes | None:
        self.get_calls += 1
        if self.fail_get:
            raise StoreUnavailable("store unavailable")
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.set_calls += 1
        if self.fail_set:
            raise StoreUnavailable("quota exceeded")
        self._data[key] = value

    def remove(self, key: str) -> None:
        self.remove_calls += 1
        if self.fail_remove:
            raise StoreUnavailable("store unavailable")
        self._data.pop(key, None)

    def close(self) -> None:
        self._data.clear()

    def raw(self, key: str) -> bytes | None:
        return self._data.get(key)


class FakeWallClock:
    """Manually driven wall clock returning milliseconds."""

    def __init__(self, now_ms: int = 1_704_067_200_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms
