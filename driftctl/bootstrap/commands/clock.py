import argparse
from typing import Any

from driftctl.bootstrap.deps import get_dispatcher
from driftctl.core.context import CommandContext

dispatcher = get_dispatcher()


@dispatcher.command("clock", "now")
def clock_now(ctx: CommandContext, *_) -> dict[str, Any]:
    return {"timestamp": ctx.clock.now()}


@dispatcher.command("clock", "peek")
def clock_peek(ctx: CommandContext, *_) -> dict[str, Any]:
    return {"timestamp": ctx.clock.peek()}


@dispatcher.command("clock", "node-id")
def clock_node_id(ctx: CommandContext, *_) -> dict[str, Any]:
    return {"node_id": ctx.clock.node_id}


@dispatcher.command("clock", "receive")
def clock_receive(
    ctx: CommandContext,
    namespace: argparse.Namespace
) -> dict[str, Any]:
    return {
        "received": namespace.timestamp,
        "timestamp": ctx.clock.receive(namespace.timestamp),
    }


@dispatcher.command("clock", "merge")
def clock_merge(
    ctx: CommandContext,
    namespace: argparse.Namespace
) -> dict[str, Any]:
    before = ctx.clock.state
    ctx.clock.merge(namespace.timestamp)
    after = ctx.clock.state
    return {
        "merged": namespace.timestamp,
        "changed": after != before,
        "last_physical_time": after.last_physical_time,
        "last_counter": after.last_counter,
    }


@dispatcher.command("clock", "reset")
def clock_reset(ctx: CommandContext, *_) -> dict[str, Any]:
    ctx.clock.reset()
    return {"message": "Clock state reset. Timestamps may no longer be monotonic."}
