from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterable, Literal, Protocol

from driftsync.core.helpers.hlc import HLCTimestamp, as_timestamp


class ConflictResolver(Protocol):
    def resolve(self, versions: Iterable[HLCTimestamp]) -> HLCTimestamp | None:
        ...


class LWWConflictResolver:
    """
    Last-Writer-Wins (LWW) conflict resolver based on HLC.

    Invariant:
        Given a set of concurrent versions, every replica must
        deterministically choose the same "winning" version.

    Rule:
        - The version with the largest timestamp wins.
        - HLC provides a strict total order, so ties are impossible unless
          the timestamps are identical down to the node id.
    """

    @staticmethod
    def resolve(versions: Iterable[HLCTimestamp]) -> HLCTimestamp | None:
        iterator = iter(versions)
        try:
            best = next(iterator)
        except StopIteration:
            return None

        for candidate in iterator:
            if candidate > best:
                best = candidate

        return best


@dataclass
class LWWResolution:
    winner: Any
    winning_timestamp: str
    source: Literal["local", "remote", "equal"]


def last_write_wins(
    local_data: Any,
    remote_data: Any,
    local_ts: str | HLCTimestamp,
    remote_ts: str | HLCTimestamp,
    resolver: ConflictResolver = LWWConflictResolver(),
) -> LWWResolution:
    """
    Keep the data carrying the winning timestamp, the later one with the
    default resolver.

    Identical timestamps (same node, same time, same counter) keep the
    local data and report source "equal".
    """
    local_hlc = as_timestamp(local_ts)
    remote_hlc = as_timestamp(remote_ts)

    winner = resolver.resolve((local_hlc, remote_hlc))
    if local_hlc == remote_hlc:
        return LWWResolution(local_data, local_hlc.serialize(), "equal")
    if winner == remote_hlc:
        return LWWResolution(remote_data, remote_hlc.serialize(), "remote")
    return LWWResolution(local_data, local_hlc.serialize(), "local")


def field_level_merge(
    local_data: Mapping[str, Any],
    remote_data: Mapping[str, Any],
    local_stamps: Mapping[str, str | HLCTimestamp],
    remote_stamps: Mapping[str, str | HLCTimestamp],
) -> dict[str, Any]:
    """
    Per-field last-writer-wins merge.

    Each field carries its own timestamp on each side. A remote field
    replaces the local one when its timestamp is later, or when only the
    remote side stamped it. Everything else keeps the local value.
    """
    result = dict(local_data)

    for key, value in remote_data.items():
        local_ts = local_stamps.get(key)
        remote_ts = remote_stamps.get(key)

        if remote_ts is None:
            continue

        if local_ts is None or as_timestamp(remote_ts) > as_timestamp(local_ts):
            result[key] = value

    return result
