import msgpack
from typing import Any

from driftsync.core.ports.serializer import Serializer


class MsgPackSerializer(Serializer):
    """
    MsgPack-based implementation of the Serializer interface.

    - deterministic binary encoding
    - compact
    - fast
    """
    def serialize(self, message: Any) -> bytes:
        return msgpack.packb(message, use_bin_type=True)

    def deserialize(self, data: bytes) -> Any:
        try:
            return msgpack.unpackb(data, raw=False)
        except (ValueError, msgpack.UnpackException) as ex:
            raise ValueError(f"Invalid msgpack payload: {ex}") from ex
