import json

import pytest

from driftsync.core.helpers.hlc import MAX_COUNTER, FormatError, HLCTimestamp, compare, parse
from driftsync.core.service.clock import STATE_KEY, HybridLogicalClock
from driftsync.core.service.identity import NODE_ID_KEY
from driftsync.infra.msgpack_serializer import MsgPackSerializer
from tests.helpers import NODE_A, NODE_B, fixed_bytes


@pytest.mark.ut
def test_now_uses_wall_clock(clock, wall_clock):
    assert clock.now() == f"{wall_clock.now_ms}:0:{NODE_A}"


@pytest.mark.ut
def test_now_increments_counter_within_same_millisecond(clock, wall_clock):
    clock.now()
    assert clock.now() == f"{wall_clock.now_ms}:1:{NODE_A}"
    assert clock.now() == f"{wall_clock.now_ms}:2:{NODE_A}"


@pytest.mark.ut
def test_now_resets_counter_when_time_advances(clock, wall_clock):
    clock.now()
    clock.now()
    wall_clock.advance(5)
    assert clock.now() == f"{wall_clock.now_ms}:0:{NODE_A}"


@pytest.mark.ut
def test_now_is_monotonic_when_wall_clock_goes_backward(clock, wall_clock):
    first = clock.now()
    wall_clock.advance(-10_000)
    second = clock.now()
    assert compare(second, first) == 1


@pytest.mark.ut
def test_now_counter_overflow(clock, wall_clock):
    start = wall_clock.now_ms
    stamps = [clock.now() for _ in range(MAX_COUNTER + 2)]

    last = parse(stamps[-1])
    assert last.physical_time == start + 1
    assert last.counter == 0
    assert all(compare(a, b) == -1 for a, b in zip(stamps, stamps[1:]))


@pytest.mark.ut
def test_monotonic_over_mixed_sequence(clock, wall_clock):
    emitted = [clock.now()]
    emitted.append(clock.receive(f"{wall_clock.now_ms + 500}:3:{NODE_B}"))
    emitted.append(clock.now())
    wall_clock.advance(-100)
    emitted.append(clock.now())
    emitted.append(clock.receive(f"{wall_clock.now_ms - 1000}:9:{NODE_B}"))
    wall_clock.advance(10_000)
    emitted.append(clock.now())
    emitted.append(clock.receive(HLCTimestamp(wall_clock.now_ms, 40, NODE_B)))

    for earlier, later in zip(emitted, emitted[1:]):
        assert compare(later, earlier) == 1


@pytest.mark.ut
def test_receive_orders_after_remote_and_local(clock, wall_clock):
    local = clock.now()
    remote = f"{wall_clock.now_ms + 2000}:17:{NODE_B}"

    result = clock.receive(remote)

    assert compare(result, remote) == 1
    assert compare(result, local) == 1
    assert result == f"{wall_clock.now_ms + 2000}:18:{NODE_A}"


@pytest.mark.ut
def test_receive_rejects_malformed_remote(clock):
    with pytest.raises(FormatError):
        clock.receive("not-a-timestamp")


@pytest.mark.ut
def test_merge_adopts_remote_ahead_without_emitting(clock, store, wall_clock):
    clock.now()
    clock.merge(f"{wall_clock.now_ms + 10}:5:{NODE_B}")

    assert clock.state.last_physical_time == wall_clock.now_ms + 10
    assert clock.state.last_counter == 5
    assert clock.now() == f"{wall_clock.now_ms + 10}:6:{NODE_A}"


@pytest.mark.ut
def test_merge_never_decreases_state(clock, store, wall_clock):
    clock.now()
    clock.now()
    before = clock.state
    writes = store.set_calls

    clock.merge(f"{wall_clock.now_ms}:1:zzzzzzzz")
    clock.merge(f"{wall_clock.now_ms - 1}:99:{NODE_B}")

    assert clock.state == before
    assert store.set_calls == writes


@pytest.mark.ut
def test_peek_does_not_advance(clock):
    emitted = clock.now()
    assert clock.peek() == emitted
    assert clock.peek() == emitted


@pytest.mark.ut
def test_peek_on_fresh_clock_emits_once(clock, wall_clock):
    assert clock.peek() == f"{wall_clock.now_ms}:0:{NODE_A}"
    assert clock.state.last_physical_time == wall_clock.now_ms


@pytest.mark.ut
def test_state_persisted_as_json(clock, store, wall_clock):
    clock.now()
    clock.now()

    stored = json.loads(store.raw(STATE_KEY))
    assert stored == {"lastPhysicalTime": wall_clock.now_ms, "lastCounter": 1}


@pytest.mark.ut
def test_state_restored_by_new_instance(make_clock, wall_clock):
    first = make_clock()
    first.now()
    last = first.now()

    second = make_clock()
    assert compare(second.now(), last) == 1


@pytest.mark.ut
def test_restore_rejects_state_too_far_in_future(make_clock, store, serializer, wall_clock):
    store.set(STATE_KEY, serializer.serialize({
        "lastPhysicalTime": wall_clock.now_ms + 60_001,
        "lastCounter": 0,
    }))

    clock = make_clock()
    assert clock.state.last_physical_time == 0


@pytest.mark.ut
def test_restore_accepts_drift_within_limit(make_clock, store, serializer, wall_clock):
    store.set(STATE_KEY, serializer.serialize({
        "lastPhysicalTime": wall_clock.now_ms + 60_000,
        "lastCounter": 4,
    }))

    clock = make_clock()
    assert clock.state.last_physical_time == wall_clock.now_ms + 60_000
    assert clock.state.last_counter == 4


@pytest.mark.ut
def test_restore_honours_custom_drift(make_clock, store, serializer, wall_clock):
    store.set(STATE_KEY, serializer.serialize({
        "lastPhysicalTime": wall_clock.now_ms + 5_000,
        "lastCounter": 0,
    }))

    clock = make_clock(max_drift_ms=1_000)
    assert clock.state.last_physical_time == 0


@pytest.mark.ut
@pytest.mark.parametrize("payload", [
    b"{not json",
    b"[]",
    b'{"lastPhysicalTime": -5, "lastCounter": 0}',
    b'{"lastPhysicalTime": 10, "lastCounter": 65536}',
    b'{"lastPhysicalTime": 10, "lastCounter": -1}',
    b'{"lastPhysicalTime": "10", "lastCounter": 0}',
    b'{"lastPhysicalTime": 10.5, "lastCounter": 0}',
    b'{"lastPhysicalTime": true, "lastCounter": 0}',
    b'{"lastCounter": 0}',
])
def test_restore_ignores_corrupt_state(make_clock, store, payload):
    store.set(STATE_KEY, payload)

    clock = make_clock()
    assert clock.state.last_physical_time == 0
    assert clock.state.last_counter == 0


@pytest.mark.ut
def test_persistence_failures_are_swallowed(clock, store, wall_clock):
    store.fail_set = True

    first = clock.now()
    second = clock.now()

    assert compare(second, first) == 1
    assert store.raw(STATE_KEY) is None


@pytest.mark.ut
def test_unreadable_store_starts_fresh(make_clock, store, wall_clock):
    store.fail_get = True
    clock = make_clock()
    assert clock.now() == f"{wall_clock.now_ms}:0:{NODE_A}"


@pytest.mark.ut
def test_reset_clears_state_and_storage(clock, store):
    clock.now()
    clock.reset()

    assert clock.state.last_physical_time == 0
    assert clock.state.last_counter == 0
    assert clock.node_id == NODE_A
    assert store.raw(STATE_KEY) is None


@pytest.mark.ut
def test_reset_survives_store_failure(clock, store):
    clock.now()
    store.fail_remove = True
    clock.reset()
    assert clock.state.last_physical_time == 0


@pytest.mark.ut
def test_clock_without_store(wall_clock):
    clock = HybridLogicalClock(node_id=NODE_A, wall_clock=wall_clock)
    assert clock.now() == f"{wall_clock.now_ms}:0:{NODE_A}"


@pytest.mark.ut
def test_rejects_node_id_of_wrong_length(wall_clock):
    with pytest.raises(ValueError):
        HybridLogicalClock(node_id="short", wall_clock=wall_clock)


@pytest.mark.ut
def test_node_id_generated_and_persisted(make_clock, store, serializer):
    clock = make_clock(node_id=None, random_bytes=fixed_bytes(b"\x00" * 6))

    assert clock.node_id == "00000000"
    assert serializer.deserialize(store.raw(NODE_ID_KEY)) == "00000000"


@pytest.mark.ut
def test_node_id_reused_across_instances(make_clock):
    first = make_clock(node_id=None)
    second = make_clock(node_id=None)
    assert first.node_id == second.node_id


@pytest.mark.ut
def test_clock_with_msgpack_serializer(make_clock, store, wall_clock):
    serializer = MsgPackSerializer()
    first = make_clock(serializer=serializer)
    emitted = first.now()

    assert serializer.deserialize(store.raw(STATE_KEY)) == {
        "lastPhysicalTime": wall_clock.now_ms,
        "lastCounter": 0,
    }
    second = make_clock(serializer=serializer)
    assert compare(second.now(), emitted) == 1
