from typing import Any

from driftsync.core.helpers.utils import deep_copy, record_get, record_set
from driftsync.core.models.conflict import (
    ConflictDetectionResult,
    FieldConflict,
    ResolutionSource,
    ResolutionSummary,
)


class FieldConflictTracker:
    """
    Field-by-field resolution state for interactive conflict UIs.

    The tracker keeps a caller-mutable map of field name to chosen value.
    Materializing the record starts from the server snapshot, re-applies
    the local-only changes, then layers every explicit resolution on top,
    so fields the user never touched still end up with a sensible value.
    """

    def __init__(self, detection: ConflictDetectionResult) -> None:
        self._detection = detection
        self._conflicts = {c.field_name: c for c in detection.conflicts}
        self._resolutions: dict[str, Any] = {}

    @property
    def conflicts(self) -> list[FieldConflict]:
        return list(self._detection.conflicts)

    def is_resolved(self, field_name: str) -> bool:
        return field_name in self._resolutions

    def is_fully_resolved(self) -> bool:
        return all(name in self._resolutions for name in self._conflicts)

    def unresolved_count(self) -> int:
        return sum(1 for name in self._conflicts if name not in self._resolutions)

    def resolve_field(self, field_name: str, source: ResolutionSource | str) -> None:
        """
        Resolve a conflicting field with its local or server value.
        Fields that are not in conflict are ignored.
        """
        source = ResolutionSource(source)
        if source not in (ResolutionSource.local, ResolutionSource.server):
            raise ValueError(f"A field can only be resolved from local or server, got '{source}'")

        conflict = self._conflicts.get(field_name)
        if conflict is None:
            return

        if source is ResolutionSource.local:
            self._resolutions[field_name] = conflict.local_value
        else:
            self._resolutions[field_name] = conflict.server_value

    def resolve_field_with_value(self, field_name: str, value: Any) -> None:
        self._resolutions[field_name] = value

    def clear_resolution(self, field_name: str) -> None:
        self._resolutions.pop(field_name, None)

    def get_resolved_data(self) -> dict[str, Any]:
        detection = self._detection
        result = deep_copy(dict(detection.server))

        for field_name in detection.local_only_changes:
            record_set(result, field_name, deep_copy(record_get(detection.local, field_name)))

        for field_name, value in self._resolutions.items():
            record_set(result, field_name, deep_copy(value))

        return result

    def get_summary(self) -> ResolutionSummary:
        resolved = [n for n in self._conflicts if n in self._resolutions]
        unresolved = [n for n in self._conflicts if n not in self._resolutions]

        return ResolutionSummary(
            total_conflicts=len(self._conflicts),
            resolved=resolved,
            unresolved=unresolved,
            local_only_changes=list(self._detection.local_only_changes),
            server_only_changes=list(self._detection.server_only_changes),
        )


def create_field_conflict_tracker(detection: ConflictDetectionResult) -> FieldConflictTracker:
    return FieldConflictTracker(detection)
