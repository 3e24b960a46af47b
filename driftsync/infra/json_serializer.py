import json
from typing import Any

from driftsync.core.ports.serializer import Serializer


class JsonSerializer(Serializer):
    """
    JSON implementation of the Serializer interface.

    The persisted clock state stays human readable, e.g.
    {"lastPhysicalTime": 1704067200000, "lastCounter": 3}.
    """
    def serialize(self, message: Any) -> bytes:
        return json.dumps(message, separators=(",", ":")).encode("utf-8")

    def deserialize(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode("utf-8"))
        except UnicodeDecodeError as ex:
            raise ValueError(f"Invalid JSON payload: {ex}") from ex
