from typing import Protocol


class KeyValueStore(Protocol):
    """
    Minimal synchronous key-value capability supplied by the host.

    The clock only needs to read, write and erase a couple of small
    records under fixed string keys. Implementations decide where the
    bytes live (memory, LMDB, browser storage bridge, ...).

    Callers treat every method as best-effort: any exception raised by an
    implementation is caught at the call site and the caller degrades to
    in-memory operation.
    """

    def get(self, key: str) -> bytes | None:
        """
        Return the value stored under `key`, or None if the key does
        not exist.
        """

    def set(self, key: str, value: bytes) -> None:
        """
        Store `value` under `key`, replacing any previous value. The write
        must be visible to subsequent calls to `get` on the same instance.
        """

    def remove(self, key: str) -> None:
        """
        Erase the value stored under `key`. Removing a missing key must
        succeed silently.
        """

    def close(self) -> None:
        """
        Release underlying resources. The instance must not be used
        afterwards.
        """
