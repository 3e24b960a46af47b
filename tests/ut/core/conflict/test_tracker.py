import pytest

from driftsync.core.conflict.detector import detect_conflict
from driftsync.core.conflict.tracker import create_field_conflict_tracker
from driftsync.core.models.conflict import ResolutionSource

BASE = {"title": "t0", "body": "b0", "status": "draft", "owner": "ann"}
LOCAL = {"title": "t1", "body": "b1", "status": "draft", "owner": "ann", "pinned": True}
SERVER = {"title": "t2", "body": "b2", "status": "live", "owner": "ann"}


@pytest.fixture
def tracker():
    return create_field_conflict_tracker(detect_conflict(LOCAL, SERVER, BASE))


@pytest.mark.ut
def test_initial_state(tracker):
    assert [c.field_name for c in tracker.conflicts] == ["title", "body"]
    assert tracker.unresolved_count() == 2
    assert not tracker.is_fully_resolved()
    assert not tracker.is_resolved("title")


@pytest.mark.ut
def test_unresolved_data_defaults_to_server_plus_local_only(tracker):
    assert tracker.get_resolved_data() == {
        "title": "t2",
        "body": "b2",
        "status": "live",
        "owner": "ann",
        "pinned": True,
    }


@pytest.mark.ut
def test_resolve_fields(tracker):
    tracker.resolve_field("title", ResolutionSource.local)
    tracker.resolve_field("body", "server")

    assert tracker.is_fully_resolved()
    assert tracker.unresolved_count() == 0
    data = tracker.get_resolved_data()
    assert data["title"] == "t1"
    assert data["body"] == "b2"


@pytest.mark.ut
def test_resolve_with_custom_value_and_clear(tracker):
    tracker.resolve_field_with_value("title", "hand edited")
    assert tracker.get_resolved_data()["title"] == "hand edited"

    tracker.clear_resolution("title")
    assert not tracker.is_resolved("title")
    assert tracker.get_resolved_data()["title"] == "t2"


@pytest.mark.ut
def test_custom_value_may_target_non_conflicting_field(tracker):
    tracker.resolve_field_with_value("status", "archived")
    assert tracker.get_resolved_data()["status"] == "archived"
    assert tracker.unresolved_count() == 2


@pytest.mark.ut
def test_resolve_field_ignores_non_conflicting(tracker):
    tracker.resolve_field("status", "local")
    assert not tracker.is_resolved("status")


@pytest.mark.ut
@pytest.mark.parametrize("source", ["base", "merged", "elsewhere"])
def test_resolve_field_rejects_other_sources(tracker, source):
    with pytest.raises(ValueError):
        tracker.resolve_field("title", source)


@pytest.mark.ut
def test_summary(tracker):
    tracker.resolve_field("body", "local")

    summary = tracker.get_summary()

    assert summary.total_conflicts == 2
    assert summary.resolved == ["body"]
    assert summary.unresolved == ["title"]
    assert summary.local_only_changes == ["pinned"]
    assert summary.server_only_changes == ["status"]


@pytest.mark.ut
def test_resolved_data_is_a_copy(tracker):
    value = {"nested": [1]}
    tracker.resolve_field_with_value("title", value)
    tracker.get_resolved_data()["title"]["nested"].append(2)
    assert value == {"nested": [1]}


@pytest.mark.ut
def test_local_deletion_is_reapplied():
    detection = detect_conflict({"a": 1}, {"a": 1, "b": 2}, {"a": 1, "b": 2})
    tracker = create_field_conflict_tracker(detection)
    assert tracker.get_resolved_data() == {"a": 1}
