import logging
import secrets
from collections.abc import Callable

from driftsync.core.helpers.nodeid import NODE_ID_LENGTH, generate_node_id
from driftsync.core.ports.serializer import Serializer
from driftsync.core.ports.store import KeyValueStore

NODE_ID_KEY = "driftsync_hlc_node_id"

_logger = logging.getLogger("core.service.identity")


def get_or_create_node_id(
    store: KeyValueStore | None,
    serializer: Serializer,
    key: str = NODE_ID_KEY,
    random_bytes: Callable[[int], bytes] = secrets.token_bytes,
) -> str:
    """
    Return the node identifier of this installation.

    The identifier is generated once and persisted under `key`; later
    calls reuse it for the whole lifetime of the installation. A stored
    value of the wrong shape is replaced. Without a store, or when the
    store fails, an ephemeral identifier is returned.
    """
    if store is None:
        return generate_node_id(random_bytes)

    node_id = _load(store, serializer, key)
    if node_id is not None:
        return node_id

    node_id = generate_node_id(random_bytes)
    try:
        store.set(key, serializer.serialize(node_id))
    except Exception as ex:
        _logger.warning(f"Unable to persist node id under '{key}': {ex}", exc_info=ex)

    return node_id


def _load(store: KeyValueStore, serializer: Serializer, key: str) -> str | None:
    try:
        raw = store.get(key)
    except Exception as ex:
        _logger.warning(f"Unable to read node id under '{key}': {ex}", exc_info=ex)
        return None

    if raw is None:
        return None

    try:
        node_id = serializer.deserialize(raw)
    except ValueError:
        node_id = None

    if not isinstance(node_id, str) or len(node_id) != NODE_ID_LENGTH:
        _logger.warning(f"Discarding malformed node id stored under '{key}'")
        return None

    return node_id
