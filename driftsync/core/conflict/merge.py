import logging
from dataclasses import replace
from typing import Any

from driftsync.core.conflict.detector import detect_conflict
from driftsync.core.helpers.utils import (
    deep_copy,
    deep_equal,
    record_get,
    record_set,
    union_keys,
)
from driftsync.core.models.conflict import (
    ConflictDetectionResult,
    ConflictResolutionResult,
    ConflictType,
    FieldConflict,
    MergeOptions,
    MergeResult,
    Record,
    ResolutionSource,
    StrategyHints,
)

_logger = logging.getLogger("core.conflict.merge")


def resolve_conflict(
    local: Record,
    server: Record,
    strategy: ConflictType | str,
    base: Record | None = None,
    options: MergeOptions | None = None,
) -> ConflictResolutionResult:
    """
    Resolve two divergent snapshots of a record with the given strategy.

    - local_wins / server_wins: always succeed with a copy of the chosen
      side; each detected conflict is annotated for auditing.
    - merge: three-way merge against `base` (an empty record when absent);
      succeeds only when no field is left unresolved.
    - manual: never resolves. The server snapshot is returned as a
      provisional value and every conflict is reported unresolved.

    Failures are reported through `success`, `unresolved_fields` and
    `error`, never raised.
    """
    detection = detect_conflict(local, server, base)

    try:
        strategy = ConflictType(strategy)
    except ValueError:
        return ConflictResolutionResult(
            success=False,
            resolved=deep_copy(dict(server)),
            strategy=strategy,
            unresolved_fields=[c.field_name for c in detection.conflicts],
            error=f"Unknown strategy: {strategy}",
        )

    match strategy:
        case ConflictType.local_wins:
            return _take_side(local, strategy, ResolutionSource.local, detection)

        case ConflictType.server_wins:
            return _take_side(server, strategy, ResolutionSource.server, detection)

        case ConflictType.merge:
            result = merge_changes(base or {}, local, server, options)
            error = None
            if result.unresolved_fields:
                error = f"Unable to auto-merge fields: {', '.join(result.unresolved_fields)}"

            return ConflictResolutionResult(
                success=not result.unresolved_fields,
                resolved=result.merged,
                strategy=strategy,
                field_resolutions=result.field_resolutions,
                unresolved_fields=result.unresolved_fields,
                error=error,
            )

        case ConflictType.manual:
            return ConflictResolutionResult(
                success=False,
                resolved=deep_copy(dict(server)),
                strategy=strategy,
                field_resolutions=[replace(c) for c in detection.conflicts],
                unresolved_fields=[c.field_name for c in detection.conflicts],
                error="Manual resolution required",
            )


def merge_changes(
    base: Record,
    local: Record,
    server: Record,
    options: MergeOptions | None = None,
) -> MergeResult:
    """
    Three-way merge of `local` and `server` relative to their common `base`.

    For every key, the first matching rule wins:
        1. a custom merger registered for the key (falls through on error)
        2. key listed in prefer_local_fields  -> local value
        3. key listed in prefer_server_fields -> server value
        4. neither side changed               -> base value
        5. only local changed                 -> local value
        6. only server changed                -> server value
        7. both changed to the same value     -> that value
        8. both changed differently           -> flagged as unresolved;
           server value when allow_partial_merge, base value otherwise
    """
    options = options or MergeOptions()
    merged = deep_copy(dict(base))
    resolutions: list[FieldConflict] = []
    unresolved: list[str] = []

    for key in union_keys(base, local, server):
        base_value = record_get(base, key)
        local_value = record_get(local, key)
        server_value = record_get(server, key)

        local_changed = not deep_equal(local_value, base_value)
        server_changed = not deep_equal(server_value, base_value)
        diverged = (
            local_changed
            and server_changed
            and not deep_equal(local_value, server_value)
        )

        field = FieldConflict(
            field_name=key,
            base_value=base_value,
            local_value=local_value,
            server_value=server_value,
            has_conflict=False,
        )

        merger = options.custom_mergers.get(key)
        if merger is not None:
            try:
                value = merger(local_value, server_value, base_value)
            except Exception as ex:
                _logger.error(
                    f"Custom merger failed for field '{key}', "
                    f"falling back to default rules: {ex}",
                    exc_info=ex
                )
            else:
                record_set(merged, key, deep_copy(value))
                field.has_conflict = diverged
                resolutions.append(field.resolved(ResolutionSource.merged, value))
                continue

        if key in options.prefer_local_fields:
            record_set(merged, key, deep_copy(local_value))
            resolutions.append(field.resolved(ResolutionSource.local, local_value))

        elif key in options.prefer_server_fields:
            record_set(merged, key, deep_copy(server_value))
            resolutions.append(field.resolved(ResolutionSource.server, server_value))

        elif not local_changed and not server_changed:
            record_set(merged, key, deep_copy(base_value))

        elif not server_changed:
            record_set(merged, key, deep_copy(local_value))
            resolutions.append(field.resolved(ResolutionSource.local, local_value))

        elif not local_changed:
            record_set(merged, key, deep_copy(server_value))
            resolutions.append(field.resolved(ResolutionSource.server, server_value))

        elif not diverged:
            # both sides converged on the same value
            record_set(merged, key, deep_copy(local_value))
            resolutions.append(field.resolved(ResolutionSource.local, local_value))

        else:
            field.has_conflict = True
            unresolved.append(key)
            if options.allow_partial_merge:
                record_set(merged, key, deep_copy(server_value))
                resolutions.append(field.resolved(ResolutionSource.server, server_value))
            else:
                resolutions.append(field)

    return MergeResult(
        merged=merged,
        field_resolutions=resolutions,
        unresolved_fields=unresolved,
    )


def suggest_resolution_strategy(
    detection: ConflictDetectionResult,
    hints: StrategyHints | None = None,
) -> ConflictType:
    """
    Pick an automatic strategy for a detection result.

    No conflicts -> merge. Otherwise an authoritative server wins, then a
    known-newer local side wins, then the ratio of conflicting fields to
    all fields decides between merge (at or under the threshold) and
    manual.
    """
    hints = hints or StrategyHints()

    if not detection.has_conflict:
        return ConflictType.merge

    if hints.server_is_authoritative:
        return ConflictType.server_wins

    if hints.local_is_newer:
        return ConflictType.local_wins

    total = len(union_keys(detection.local, detection.server))
    ratio = len(detection.conflicts) / total if total else 0.0

    if ratio <= hints.auto_merge_threshold:
        return ConflictType.merge

    return ConflictType.manual


def _take_side(
    side: Record,
    strategy: ConflictType,
    source: ResolutionSource,
    detection: ConflictDetectionResult,
) -> ConflictResolutionResult:
    resolutions = []
    for conflict in detection.conflicts:
        value: Any = conflict.local_value if source is ResolutionSource.local else conflict.server_value
        resolutions.append(conflict.resolved(source, value))

    return ConflictResolutionResult(
        success=True,
        resolved=deep_copy(dict(side)),
        strategy=strategy,
        field_resolutions=resolutions,
        unresolved_fields=[],
    )
