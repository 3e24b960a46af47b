import json
from functools import lru_cache

from pydantic import ValidationError

from driftsync.bootstrap.config.settings import DriftSyncConfig
from driftsync.core.models.conflict import FieldMerger, MergeOptions, StrategyHints
from driftsync.core.ports.serializer import Serializer
from driftsync.core.ports.store import KeyValueStore
from driftsync.core.service.clock import HybridLogicalClock
from driftsync.infra.json_serializer import JsonSerializer
from driftsync.infra.lmdb_store import LMDBStore
from driftsync.infra.memory_store import InMemoryStore
from driftsync.infra.msgpack_serializer import MsgPackSerializer


@lru_cache
def get_clock() -> HybridLogicalClock:
    return build_clock(get_config(), get_store(), get_serializer())


@lru_cache
def get_store() -> KeyValueStore:
    return build_store(get_config())


@lru_cache
def get_serializer() -> Serializer:
    return build_serializer(get_config())


@lru_cache
def get_config() -> DriftSyncConfig:
    try:
        return DriftSyncConfig()
    except FileNotFoundError as ex:
        raise SystemExit(f"Provide a correct configuration file path: {ex}")
    except ValidationError as ex:
        msg = ["Configuration validation failed:"]
        errs = json.loads(ex.json())
        for err in errs:
            msg.append(f"  {'.'.join(str(p) for p in err['loc'])}: {err['msg']}")
        raise SystemExit("\n".join(msg))


def build_store(config: DriftSyncConfig) -> KeyValueStore:
    if config.store.backend == "memory":
        return InMemoryStore()
    return LMDBStore(config.store.data_dir, map_size=config.store.map_size)


def build_serializer(config: DriftSyncConfig) -> Serializer:
    if config.store.serializer == "msgpack":
        return MsgPackSerializer()
    return JsonSerializer()


def build_clock(
    config: DriftSyncConfig,
    store: KeyValueStore | None,
    serializer: Serializer,
) -> HybridLogicalClock:
    return HybridLogicalClock(
        store=store,
        serializer=serializer,
        node_id=config.clock.node_id,
        state_key=config.clock.state_key,
        node_id_key=config.clock.node_id_key,
        max_drift_ms=config.clock.max_drift_ms,
    )


def build_merge_options(
    config: DriftSyncConfig,
    prefer_local_fields: list[str] | None = None,
    prefer_server_fields: list[str] | None = None,
    custom_mergers: dict[str, FieldMerger] | None = None,
) -> MergeOptions:
    return MergeOptions(
        prefer_local_fields=list(prefer_local_fields or []),
        prefer_server_fields=list(prefer_server_fields or []),
        custom_mergers=dict(custom_mergers or {}),
        allow_partial_merge=config.merge.allow_partial_merge,
    )


def build_strategy_hints(
    config: DriftSyncConfig,
    local_is_newer: bool = False,
    server_is_authoritative: bool = False,
) -> StrategyHints:
    return StrategyHints(
        local_is_newer=local_is_newer,
        server_is_authoritative=server_is_authoritative,
        auto_merge_threshold=config.merge.auto_merge_threshold,
    )
