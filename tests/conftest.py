import os
from typing import Generator

import pytest
import yaml

from driftsync.core.service.clock import HybridLogicalClock
from driftsync.infra.json_serializer import JsonSerializer
from tests.fake.fake_store import FakeStore, FakeWallClock
from tests.helpers import FakeDriftConfig, NODE_A


@pytest.fixture
def serializer():
    return JsonSerializer()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def wall_clock():
    return FakeWallClock()


@pytest.fixture
def make_clock(store, serializer, wall_clock):
    def factory(node_id: str | None = NODE_A, **kwargs) -> HybridLogicalClock:
        kwargs.setdefault("store", store)
        kwargs.setdefault("serializer", serializer)
        kwargs.setdefault("wall_clock", wall_clock)
        return HybridLogicalClock(node_id=node_id, **kwargs)
    return factory


@pytest.fixture
def clock(make_clock) -> HybridLogicalClock:
    return make_clock()


@pytest.fixture(scope="session")
def config_file(tmp_path_factory):
    base = tmp_path_factory.mktemp("config")
    file = base / "driftsync.yaml"

    data = {
        "clock": {
            "node_id": "cfgnode1",
            "max_drift_ms": 30000,
        },
        "store": {
            "backend": "memory",
            "data_dir": str(base / "data"),
            "serializer": "msgpack",
        },
        "merge": {
            "allow_partial_merge": False,
            "auto_merge_threshold": 0.5,
        },
    }

    file.write_text(yaml.dump(data))
    return file


@pytest.fixture(scope="session")
def drift_config(config_file) -> Generator[FakeDriftConfig, None, None]:
    backup = os.environ.copy()

    try:
        os.environ["TEST_DRIFTSYNCCONFIG"] = str(config_file)
        yield FakeDriftConfig()
    finally:
        os.environ.clear()
        os.environ.update(backup)
