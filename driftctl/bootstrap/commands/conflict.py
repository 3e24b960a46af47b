import argparse
from typing import Any

from driftctl.bootstrap.deps import get_dispatcher
from driftctl.core.context import CommandContext
from driftctl.core.loader import load_record
from driftsync.bootstrap.deps import build_merge_options, build_strategy_hints
from driftsync.core.conflict.detector import detect_conflict
from driftsync.core.conflict.merge import resolve_conflict, suggest_resolution_strategy

dispatcher = get_dispatcher()


@dispatcher.command("conflict", "detect")
def conflict_detect(
    _: CommandContext,
    namespace: argparse.Namespace
) -> dict[str, Any]:
    local, server, base = _load_snapshots(namespace)
    return detect_conflict(local, server, base).to_dict()


@dispatcher.command("conflict", "resolve")
def conflict_resolve(
    ctx: CommandContext,
    namespace: argparse.Namespace
) -> dict[str, Any]:
    local, server, base = _load_snapshots(namespace)
    options = build_merge_options(
        ctx.config,
        prefer_local_fields=namespace.prefer_local,
        prefer_server_fields=namespace.prefer_server,
    )
    if namespace.no_partial:
        options.allow_partial_merge = False

    result = resolve_conflict(local, server, namespace.strategy, base, options)
    return result.to_dict()


@dispatcher.command("conflict", "suggest")
def conflict_suggest(
    ctx: CommandContext,
    namespace: argparse.Namespace
) -> dict[str, Any]:
    local, server, base = _load_snapshots(namespace)
    detection = detect_conflict(local, server, base)
    hints = build_strategy_hints(
        ctx.config,
        local_is_newer=namespace.local_newer,
        server_is_authoritative=namespace.server_authoritative,
    )
    if namespace.threshold is not None:
        hints.auto_merge_threshold = namespace.threshold

    strategy = suggest_resolution_strategy(detection, hints)
    return {
        "strategy": strategy.value,
        "conflicts": len(detection.conflicts),
    }


def _load_snapshots(namespace: argparse.Namespace):
    local = load_record(namespace.local)
    server = load_record(namespace.server)
    base = load_record(namespace.base) if namespace.base else None
    return local, server, base
