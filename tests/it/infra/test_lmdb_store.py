import pytest

from driftsync.core.helpers.hlc import compare
from driftsync.core.service.clock import STATE_KEY, HybridLogicalClock
from driftsync.infra.lmdb_store import LMDBStore
from driftsync.infra.msgpack_serializer import MsgPackSerializer


@pytest.fixture
def path(tmp_path):
    return tmp_path / "env"


@pytest.mark.it
def test_store_basic_set_get_remove(path):
    store = LMDBStore(path, map_size=1 << 16)

    assert store.get("a") is None
    store.set("a", b"1")
    assert store.get("a") == b"1"

    store.remove("a")
    assert store.get("a") is None

    store.remove("a")
    store.close()


@pytest.mark.it
def test_store_survives_reopen(path):
    store = LMDBStore(path, map_size=1 << 16)
    store.set("key", b"value")
    store.close()

    store = LMDBStore(path, map_size=1 << 16)
    assert store.get("key") == b"value"
    store.close()


@pytest.mark.it
def test_keyspaces_are_isolated(path):
    first = LMDBStore(path / "shared", keyspace=b"one", map_size=1 << 16)
    first.set("k", b"1")
    first.close()

    second = LMDBStore(path / "shared", keyspace=b"two", map_size=1 << 16)
    assert second.get("k") is None
    second.close()


@pytest.mark.it
def test_clock_state_survives_restart(path):
    store = LMDBStore(path, map_size=1 << 16)
    clock = HybridLogicalClock(store=store, serializer=MsgPackSerializer())
    node_id = clock.node_id
    clock.now()
    last = clock.now()
    store.close()

    store = LMDBStore(path, map_size=1 << 16)
    clock = HybridLogicalClock(store=store, serializer=MsgPackSerializer())

    assert clock.node_id == node_id
    assert compare(clock.now(), last) == 1
    assert store.get(STATE_KEY) is not None
    store.close()
