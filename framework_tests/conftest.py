"""Test configuration and fixtures for framework tests."""

from unittest.mock import MagicMock

import pytest

from corfu_universe.core.cleanup import CleanupRegistry
from corfu_universe.core.types import NodeParams, UniverseConfig


@pytest.fixture
def cleanup_registry():
    """Registry that never installs an atexit hook."""
    return CleanupRegistry(register_atexit=False)


@pytest.fixture
def make_node_params(tmp_path):
    """Build node parameters whose logs land under the test's tmp dir."""

    def _make(port: int = 9000, **kwargs) -> NodeParams:
        kwargs.setdefault("base_log_dir", tmp_path / "logs")
        return NodeParams(port=port, **kwargs)

    return _make


@pytest.fixture
def universe_config(tmp_path) -> UniverseConfig:
    return UniverseConfig(work_dir=tmp_path / "work")


@pytest.fixture
def mock_bootstrap_client():
    return MagicMock()


@pytest.fixture
def mock_docker_client():
    """Docker client mock whose containers report ``running``."""
    client = MagicMock()
    container = client.containers.create.return_value
    container.status = "running"
    client.containers.get.return_value = container
    network = client.networks.get.return_value
    network.attrs = {"IPAM": {"Config": [{"Subnet": "172.30.0.0/16", "Gateway": "172.30.0.1"}]}}
    return client
