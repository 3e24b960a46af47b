from driftsync.core.helpers.utils import deep_equal, record_get, union_keys
from driftsync.core.models.conflict import (
    ConflictDetectionResult,
    FieldConflict,
    Record,
)


def detect_conflict(
    local: Record,
    server: Record,
    base: Record | None = None
) -> ConflictDetectionResult:
    """
    Compare two (or three) snapshots of the same record field by field.

    Three-way mode (base given):
        - equal local/server values that differ from base -> same_changes
        - only local moved away from base                 -> local_only_changes
        - only server moved away from base                -> server_only_changes
        - both moved, to different values                 -> conflict

    Two-way mode (no base): nothing tells which side changed, so every
    field whose local and server values differ is a conflict.
    """
    conflicts: list[FieldConflict] = []
    local_only: list[str] = []
    server_only: list[str] = []
    same: list[str] = []

    for key in union_keys(local, server, base):
        local_value = record_get(local, key)
        server_value = record_get(server, key)
        base_value = record_get(base, key)

        local_changed = base is None or not deep_equal(local_value, base_value)
        server_changed = base is None or not deep_equal(server_value, base_value)

        if deep_equal(local_value, server_value):
            if base is not None and local_changed:
                same.append(key)
            continue

        if base is None or (local_changed and server_changed):
            conflicts.append(FieldConflict(
                field_name=key,
                base_value=base_value,
                local_value=local_value,
                server_value=server_value,
                has_conflict=True,
            ))
        elif local_changed:
            local_only.append(key)
        else:
            server_only.append(key)

    return ConflictDetectionResult(
        has_conflict=bool(conflicts),
        conflicts=conflicts,
        local_only_changes=local_only,
        server_only_changes=server_only,
        same_changes=same,
        local=local,
        server=server,
        base=base,
    )
