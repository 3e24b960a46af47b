import argparse
from typing import Any

from driftctl.bootstrap.deps import get_dispatcher
from driftctl.core.context import CommandContext
from driftsync.core.helpers.hlc import HLCTimestamp, compare, to_datetime

dispatcher = get_dispatcher()


@dispatcher.command("ts", "parse")
def ts_parse(
    _: CommandContext,
    namespace: argparse.Namespace
) -> dict[str, Any]:
    timestamp = HLCTimestamp.parse(namespace.timestamp)
    data = timestamp.to_dict()
    data["datetime"] = to_datetime(timestamp).isoformat()
    return data


@dispatcher.command("ts", "compare")
def ts_compare(
    _: CommandContext,
    namespace: argparse.Namespace
) -> dict[str, Any]:
    result = compare(namespace.a, namespace.b)
    relation = {-1: "before", 0: "equal", 1: "after"}[result]
    return {"result": result, "relation": relation}
