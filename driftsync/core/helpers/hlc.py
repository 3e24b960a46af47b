import time
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Any, Iterable

from driftsync.core.helpers.nodeid import NODE_ID_LENGTH, generate_node_id

MAX_COUNTER = 0xFFFF
"""Largest value of the 16-bit logical counter."""


class FormatError(ValueError):
    """Raised when a serialized HLC timestamp is malformed."""


@dataclass(frozen=True, order=True, slots=True)
class HLCTimestamp:
    """
    Hybrid Logical Clock (HLC) timestamp.

    A timestamp composed of:
        - physical_time: physical time in milliseconds since the epoch
        - counter: 16-bit logical counter for same-millisecond ordering
        - node_id: 8-character node identifier to break ties

    The natural ordering (order=True) provides a strict total order:
        (physical_time, counter, node_id)

    Two timestamps emitted by different nodes at the same millisecond and
    counter therefore never compare equal.
    """
    physical_time: int
    counter: int
    node_id: str

    def serialize(self) -> str:
        return f"{self.physical_time}:{self.counter}:{self.node_id}"

    @classmethod
    def parse(cls, raw: str) -> "HLCTimestamp":
        """
        Parse the wire format "<physical_time>:<counter>:<node_id>".

        Invalid input is always rejected with FormatError, never clamped
        or coerced.
        """
        parts = raw.split(":")
        if len(parts) != 3:
            raise FormatError(
                f"Invalid HLC format: expected 3 parts, got {len(parts)}"
            )

        physical_str, counter_str, node_id = parts

        if not _is_plain_uint(physical_str):
            raise FormatError(f"Invalid HLC physical time: {physical_str!r}")

        if not _is_plain_uint(counter_str) or int(counter_str) > MAX_COUNTER:
            raise FormatError(f"Invalid HLC counter: {counter_str!r}")

        if len(node_id) != NODE_ID_LENGTH:
            raise FormatError(
                f"Invalid HLC node ID: expected {NODE_ID_LENGTH} characters, "
                f"got {len(node_id)}"
            )

        return cls(
            physical_time=int(physical_str),
            counter=int(counter_str),
            node_id=node_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "physical_time": self.physical_time,
            "counter": self.counter,
            "node_id": self.node_id,
        }

    def __str__(self) -> str:
        return self.serialize()


@dataclass(frozen=True, slots=True)
class ClockState:
    """
    State of a Hybrid Logical Clock.

    Every transition returns a new ClockState; the state itself is never
    mutated. Callers keep the latest value in whatever cell they own.
    """
    node_id: str
    last_physical_time: int = 0
    last_counter: int = 0

    def tick_local(self, now_ms: int) -> "ClockState":
        """
        Advance the clock for a local event.

        Rules:
        - if now > last_physical_time: adopt now, counter = 0
        - else: counter + 1

        A counter overflow bumps the physical time by one millisecond and
        restarts the counter, so monotonicity holds even when the wall clock
        stalls or moves backward.
        """
        if now_ms > self.last_physical_time:
            return self._replace(now_ms, 0)
        return self._bounded(self.last_physical_time, self.last_counter + 1)

    def tick_on_receive(self, remote: HLCTimestamp, now_ms: int) -> "ClockState":
        """
        Advance the clock when observing a remote timestamp.

        Standard HLC receive rules:
        - pt = max(now, last_physical_time, remote.physical_time)
        - counter depends on which physical time dominates:
            * local and remote equal pt: max(counters) + 1
            * local alone: local counter + 1
            * remote alone: remote counter + 1
            * wall clock alone: 0

        The resulting state is strictly greater than both the prior state
        and the remote timestamp.
        """
        pt = max(now_ms, self.last_physical_time, remote.physical_time)

        if pt == self.last_physical_time and pt == remote.physical_time:
            counter = max(self.last_counter, remote.counter) + 1
        elif pt == self.last_physical_time:
            counter = self.last_counter + 1
        elif pt == remote.physical_time:
            counter = remote.counter + 1
        else:
            counter = 0

        return self._bounded(pt, counter)

    def merge(self, remote: HLCTimestamp) -> "ClockState":
        """
        Passively absorb a remote timestamp without emitting an event.

        The remote (physical_time, counter) pair is adopted only when it is
        ahead of the current pair. The node id takes no part in the
        comparison since this is an internal state update.
        """
        if (remote.physical_time, remote.counter) > (self.last_physical_time, self.last_counter):
            return self._replace(remote.physical_time, remote.counter)
        return self

    def stamp(self) -> HLCTimestamp:
        return HLCTimestamp(
            physical_time=self.last_physical_time,
            counter=self.last_counter,
            node_id=self.node_id,
        )

    def _bounded(self, physical_time: int, counter: int) -> "ClockState":
        # 64k events in one millisecond: borrow the next millisecond
        if counter > MAX_COUNTER:
            return self._replace(physical_time + 1, 0)
        return self._replace(physical_time, counter)

    def _replace(self, physical_time: int, counter: int) -> "ClockState":
        return ClockState(
            node_id=self.node_id,
            last_physical_time=physical_time,
            last_counter=counter,
        )


def now_millis() -> int:
    """Return current system time in milliseconds."""
    return int(time.time() * 1000)


def serialize(timestamp: HLCTimestamp) -> str:
    return timestamp.serialize()


def parse(raw: str) -> HLCTimestamp:
    return HLCTimestamp.parse(raw)


def as_timestamp(value: str | HLCTimestamp) -> HLCTimestamp:
    if isinstance(value, HLCTimestamp):
        return value
    return HLCTimestamp.parse(value)


def compare(a: str | HLCTimestamp, b: str | HLCTimestamp) -> int:
    """Return -1, 0 or 1 as `a` sorts before, equal to, or after `b`."""
    left, right = as_timestamp(a), as_timestamp(b)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def is_before(a: str | HLCTimestamp, b: str | HLCTimestamp) -> bool:
    return compare(a, b) < 0


def is_after(a: str | HLCTimestamp, b: str | HLCTimestamp) -> bool:
    return compare(a, b) > 0


def is_valid(raw: str) -> bool:
    try:
        HLCTimestamp.parse(raw)
    except FormatError:
        return False
    return True


def physical_time_of(value: str | HLCTimestamp) -> int:
    return as_timestamp(value).physical_time


def to_datetime(value: str | HLCTimestamp) -> datetime:
    """Convert the physical component of a timestamp to an aware UTC datetime."""
    return datetime.fromtimestamp(physical_time_of(value) / 1000, tz=UTC)


def from_datetime(
    moment: datetime,
    counter: int = 0,
    node_id: str | None = None
) -> str:
    """
    Build a serialized timestamp from a datetime.

    Meant for test data and backfilling historical records. The counter is
    clamped to [0, MAX_COUNTER] and a random node id is used when none is given.
    """
    timestamp = HLCTimestamp(
        physical_time=int(moment.timestamp() * 1000),
        counter=max(0, min(counter, MAX_COUNTER)),
        node_id=node_id if node_id is not None else generate_node_id(),
    )
    return timestamp.serialize()


def min_timestamp(values: Iterable[str | HLCTimestamp]) -> str | None:
    parsed = [as_timestamp(v) for v in values]
    if not parsed:
        return None
    return min(parsed).serialize()


def max_timestamp(values: Iterable[str | HLCTimestamp]) -> str | None:
    parsed = [as_timestamp(v) for v in values]
    if not parsed:
        return None
    return max(parsed).serialize()


def _is_plain_uint(raw: str) -> bool:
    return raw.isascii() and raw.isdigit()
