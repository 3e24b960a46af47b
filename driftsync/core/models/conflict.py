from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from driftsync.core.helpers.utils import MISSING

Record = Mapping[str, Any]
"""A plain key-value snapshot of one record."""

FieldMerger = Callable[[Any, Any, Any], Any]
"""Custom per-field merge function: (local, server, base) -> merged value."""


class ConflictType(StrEnum):
    local_wins = "local_wins"
    server_wins = "server_wins"
    merge = "merge"
    manual = "manual"


class ResolutionSource(StrEnum):
    local = "local"
    server = "server"
    base = "base"
    merged = "merged"


@dataclass
class FieldConflict:
    """
    Field-level comparison produced by the detector and annotated by the
    resolver. Absent keys carry the MISSING sentinel.
    """
    field_name: str
    base_value: Any
    local_value: Any
    server_value: Any
    has_conflict: bool
    resolved_from: ResolutionSource | None = None
    """Which side the resolved value came from, None while unresolved."""

    resolved_value: Any = MISSING

    def resolved(self, source: ResolutionSource, value: Any) -> "FieldConflict":
        """Return a copy annotated with a resolution."""
        return FieldConflict(
            field_name=self.field_name,
            base_value=self.base_value,
            local_value=self.local_value,
            server_value=self.server_value,
            has_conflict=self.has_conflict,
            resolved_from=source,
            resolved_value=value,
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "field_name": self.field_name,
            "base_value": self.base_value,
            "local_value": self.local_value,
            "server_value": self.server_value,
            "has_conflict": self.has_conflict,
        }
        if self.resolved_from is not None:
            data["resolved_from"] = self.resolved_from.value
            data["resolved_value"] = self.resolved_value
        return {k: v for k, v in data.items() if v is not MISSING}


@dataclass(frozen=True)
class ConflictDetectionResult:
    has_conflict: bool
    conflicts: list[FieldConflict]
    local_only_changes: list[str]
    server_only_changes: list[str]
    same_changes: list[str]
    local: Record
    server: Record
    base: Record | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_conflict": self.has_conflict,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "local_only_changes": list(self.local_only_changes),
            "server_only_changes": list(self.server_only_changes),
            "same_changes": list(self.same_changes),
        }


@dataclass
class ConflictResolutionResult:
    success: bool
    resolved: dict[str, Any]
    strategy: ConflictType | str
    field_resolutions: list[FieldConflict] = field(default_factory=list)
    unresolved_fields: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "success": self.success,
            "strategy": str(self.strategy),
            "resolved": self.resolved,
            "field_resolutions": [f.to_dict() for f in self.field_resolutions],
            "unresolved_fields": list(self.unresolved_fields),
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class MergeOptions:
    prefer_local_fields: list[str] = field(default_factory=list)
    """Fields that always take the local value."""

    prefer_server_fields: list[str] = field(default_factory=list)
    """Fields that always take the server value."""

    custom_mergers: dict[str, FieldMerger] = field(default_factory=dict)
    """Per-field merge functions, tried before any other rule."""

    allow_partial_merge: bool = True
    """
    On a true conflict, take the server value and flag the field (True),
    or leave the field at its base value and flag it (False).
    """


@dataclass
class MergeResult:
    merged: dict[str, Any]
    field_resolutions: list[FieldConflict]
    unresolved_fields: list[str]


@dataclass
class StrategyHints:
    local_is_newer: bool = False
    """Local changes are known to be more recent."""

    server_is_authoritative: bool = False
    """Server data has been validated or approved."""

    auto_merge_threshold: float = 0.3
    """Highest conflicting-field ratio that still allows an automatic merge."""


@dataclass
class ResolutionSummary:
    total_conflicts: int
    resolved: list[str]
    unresolved: list[str]
    local_only_changes: list[str]
    server_only_changes: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_conflicts": self.total_conflicts,
            "resolved": list(self.resolved),
            "unresolved": list(self.unresolved),
            "local_only_changes": list(self.local_only_changes),
            "server_only_changes": list(self.server_only_changes),
        }
