import sys
from pathlib import Path

import pytest
from loguru import logger

pytest_plugins = ["amana_vaults.testing.chain"]

# Repo root first on sys.path so amana_vaults.tests.test_utils resolves to this checkout
_repo_root_str = str(Path(__file__).parent.parent)


def pytest_configure(config):
    config.addinivalue_line("markers", "scenario: end-to-end scenario replay")
    if _repo_root_str in sys.path:
        sys.path.remove(_repo_root_str)
    sys.path.insert(0, _repo_root_str)


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "scenario" in item.nodeid:
            item.add_marker(pytest.mark.scenario)


@pytest.fixture
def log_messages():
    """Collect loguru records emitted during the test as ``(level, message)`` pairs."""
    records: list[tuple[str, str]] = []
    sink_id = logger.add(lambda m: records.append((m.record["level"].name, m.record["message"])), level="DEBUG")
    yield records
    logger.remove(sink_id)
