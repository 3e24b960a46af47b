import logging
import secrets
from collections.abc import Callable
from typing import Any

from driftsync.core.helpers.hlc import (
    MAX_COUNTER,
    ClockState,
    HLCTimestamp,
    as_timestamp,
    now_millis,
)
from driftsync.core.helpers.nodeid import NODE_ID_LENGTH
from driftsync.core.ports.serializer import Serializer
from driftsync.core.ports.store import KeyValueStore
from driftsync.core.service.identity import NODE_ID_KEY, get_or_create_node_id
from driftsync.infra.json_serializer import JsonSerializer

STATE_KEY = "driftsync_hlc_state"
MAX_DRIFT_MS = 60_000


class HybridLogicalClock:
    """
    Stateful Hybrid Logical Clock for one client installation.

    The clock owns a ClockState (node id, last physical time, last counter)
    and exposes the event-stamping operations used by business logic:

        - now():       stamp a local mutation
        - receive(ts): stamp the observation of a remote timestamp
        - merge(ts):   passively absorb a remote timestamp
        - peek():      read the last emitted timestamp
        - reset():     forget everything (tests / bootstrap only)

    Every returned timestamp compares strictly greater than every timestamp
    this instance previously emitted or observed through receive().

    The (last physical time, last counter) pair is persisted after each
    mutation through the injected KeyValueStore. Persistence is
    best-effort: store failures are logged and the clock continues in
    memory.

    Not thread-safe: several writers sharing one clock, or one persisted
    state slot, must serialize access themselves.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        serializer: Serializer | None = None,
        node_id: str | None = None,
        wall_clock: Callable[[], int] = now_millis,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
        state_key: str = STATE_KEY,
        node_id_key: str = NODE_ID_KEY,
        max_drift_ms: int = MAX_DRIFT_MS,
    ) -> None:
        self._store = store
        self._serializer = serializer or JsonSerializer()
        self._wall_clock = wall_clock
        self._state_key = state_key
        self._max_drift_ms = max_drift_ms
        self._logger = logging.getLogger("core.service.clock")

        if node_id is None:
            node_id = get_or_create_node_id(
                store, self._serializer, node_id_key, random_bytes
            )
        elif len(node_id) != NODE_ID_LENGTH:
            raise ValueError(
                f"node_id must be exactly {NODE_ID_LENGTH} characters, got {node_id!r}"
            )

        self._state = self._restore(ClockState(node_id=node_id))

    @property
    def node_id(self) -> str:
        return self._state.node_id

    @property
    def state(self) -> ClockState:
        return self._state

    def now(self) -> str:
        """
        Generate a timestamp for a local event.

        The result is strictly greater than any timestamp previously
        emitted or received by this clock, even if the wall clock stalled
        or moved backward.
        """
        self._state = self._state.tick_local(self._wall_clock())
        self._persist()
        return self._state.stamp().serialize()

    def receive(self, remote: str | HLCTimestamp) -> str:
        """
        Update the clock with a timestamp observed from another node and
        return a new timestamp ordered after both.

        Raises FormatError when `remote` is a malformed string.
        """
        remote_ts = as_timestamp(remote)
        self._state = self._state.tick_on_receive(remote_ts, self._wall_clock())
        self._persist()
        return self._state.stamp().serialize()

    def merge(self, remote: str | HLCTimestamp) -> None:
        """
        Absorb a remote timestamp without emitting an event, so future
        timestamps order after it. No-op when the remote timestamp is not
        ahead of the current state.
        """
        remote_ts = as_timestamp(remote)
        merged = self._state.merge(remote_ts)
        if merged is not self._state:
            self._state = merged
            self._persist()

    def peek(self) -> str:
        """
        Return the last emitted timestamp without advancing the clock.

        A clock that never emitted anything has no timestamp to show; in
        that case a first timestamp is generated with now().
        """
        if self._state.last_physical_time == 0:
            return self.now()
        return self._state.stamp().serialize()

    def reset(self) -> None:
        """
        Reset the clock to zero and erase the persisted state.

        This breaks the monotonicity guarantee: timestamps emitted after a
        reset may order before earlier ones. Use for tests and bootstrap
        only.
        """
        self._state = ClockState(node_id=self._state.node_id)

        if self._store is None:
            return

        try:
            self._store.remove(self._state_key)
        except Exception as ex:
            self._logger.warning(f"Unable to erase clock state: {ex}", exc_info=ex)

    def _persist(self) -> None:
        if self._store is None:
            return

        payload = {
            "lastPhysicalTime": self._state.last_physical_time,
            "lastCounter": self._state.last_counter,
        }
        try:
            self._store.set(self._state_key, self._serializer.serialize(payload))
        except Exception as ex:
            self._logger.warning(
                f"Unable to persist clock state, continuing in memory: {ex}",
                exc_info=ex
            )

    def _restore(self, initial: ClockState) -> ClockState:
        if self._store is None:
            return initial

        try:
            raw = self._store.get(self._state_key)
        except Exception as ex:
            self._logger.warning(f"Unable to read clock state: {ex}", exc_info=ex)
            return initial

        if raw is None:
            return initial

        try:
            stored = self._serializer.deserialize(raw)
        except ValueError as ex:
            self._logger.warning(f"Ignoring undecodable clock state: {ex}")
            return initial

        if not self._is_restorable(stored):
            self._logger.warning(f"Ignoring invalid clock state: {stored!r}")
            return initial

        return ClockState(
            node_id=initial.node_id,
            last_physical_time=stored["lastPhysicalTime"],
            last_counter=stored["lastCounter"],
        )

    def _is_restorable(self, stored: Any) -> bool:
        # Guards against a corrupted or forward-drifted value poisoning
        # every future comparison.
        if not isinstance(stored, dict):
            return False

        physical = stored.get("lastPhysicalTime")
        counter = stored.get("lastCounter")
        if not _is_int(physical) or not _is_int(counter):
            return False

        now = self._wall_clock()
        return 0 <= physical <= now + self._max_drift_ms and 0 <= counter <= MAX_COUNTER


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
