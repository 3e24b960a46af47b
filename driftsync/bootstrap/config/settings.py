from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource, YamlConfigSettingsSource

from driftsync.bootstrap.config.loader import get_configfile
from driftsync.core.helpers.nodeid import NODE_ID_LENGTH
from driftsync.core.service.clock import MAX_DRIFT_MS, STATE_KEY
from driftsync.core.service.identity import NODE_ID_KEY


class ClockSettings(BaseModel):
    node_id: Annotated[
        str | None,
        Field(
            description=(
                "Fixed 8-character node identifier for this installation.\n"
                "Leave unset to generate one on first start and persist it in the\n"
                "configured store. Two installations must never share a node id:\n"
                "it is the final tie-break of the timestamp order."
            ),
            default=None
        )
    ]

    max_drift_ms: Annotated[
        int,
        Field(
            description=(
                "How far ahead of the wall clock (in milliseconds) a persisted clock\n"
                "state may be and still be restored on start. Anything further ahead\n"
                "is treated as corrupted and discarded."
            ),
            default=MAX_DRIFT_MS,
            ge=0
        )
    ]

    state_key: Annotated[
        str,
        Field(
            description="Store key holding the persisted clock state.",
            default=STATE_KEY
        )
    ]

    node_id_key: Annotated[
        str,
        Field(
            description="Store key holding the persisted node identifier.",
            default=NODE_ID_KEY
        )
    ]

    @field_validator("node_id")
    @classmethod
    def validate_node_id(cls, v: str | None) -> str | None:
        if v is not None and len(v) != NODE_ID_LENGTH:
            raise ValueError(f"node_id must be exactly {NODE_ID_LENGTH} characters")
        return v


class StoreSettings(BaseModel):
    backend: Annotated[
        Literal["memory", "lmdb"],
        Field(
            description=(
                "Persistence backend for the clock state.\n"
                "memory → nothing survives the process.\n"
                "lmdb   → durable state under data_dir."
            ),
            default="lmdb"
        )
    ]

    data_dir: Annotated[
        Path,
        Field(
            description=(
                "Directory of the LMDB environment. It must be writable and\n"
                "persistent across restarts."
            ),
            default=Path("~/.driftsync"),
            validate_default=True
        )
    ]

    map_size: Annotated[
        int,
        Field(
            description="Maximum size of the LMDB map in bytes.",
            default=1 << 20,
            gt=0
        )
    ]

    serializer: Annotated[
        Literal["json", "msgpack"],
        Field(
            description="Encoding of the persisted records.",
            default="json"
        )
    ]

    @field_validator("data_dir")
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        return v.expanduser()


class MergeSettings(BaseModel):
    allow_partial_merge: Annotated[
        bool,
        Field(
            description=(
                "On a true conflict, take the server value and flag the field\n"
                "instead of leaving it at its base value."
            ),
            default=True
        )
    ]

    auto_merge_threshold: Annotated[
        float,
        Field(
            description=(
                "Highest ratio of conflicting fields for which an automatic\n"
                "merge is suggested; above it, manual resolution is suggested."
            ),
            default=0.3,
            ge=0.0,
            le=1.0
        )
    ]


class DriftSyncConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DRIFTSYNC_",
        env_nested_delimiter="__",
        extra="allow"
    )

    clock: Annotated[
        ClockSettings,
        Field(
            description="Hybrid Logical Clock configuration.",
            default_factory=ClockSettings
        )
    ]

    store: Annotated[
        StoreSettings,
        Field(
            description="Key-value store used to persist clock state and node identity.",
            default_factory=StoreSettings
        )
    ]

    merge: Annotated[
        MergeSettings,
        Field(
            description="Defaults applied when resolving conflicts.",
            default_factory=MergeSettings
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        configfile = get_configfile()
        if configfile is None:
            return init_settings, env_settings
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=configfile),
        )
