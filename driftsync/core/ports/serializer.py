from typing import Protocol, Any


class Serializer(Protocol):
    """
    Defines the interface for encoding/decoding the small records the
    clock persists (clock state, node identity).

    Implementations must be:
    - deterministic
    - pure (no side effects)
    - safe against malformed input (raise ValueError, never crash)
    """

    def serialize(self, message: Any) -> bytes:
        """Encode a Python object into bytes suitable for a KeyValueStore."""

    def deserialize(self, data: bytes) -> Any:
        """Decode bytes read from a KeyValueStore into a Python object."""
