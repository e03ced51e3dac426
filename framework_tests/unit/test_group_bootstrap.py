"""Tests for command-based cluster bootstrap."""

import json
from unittest.mock import Mock

import pytest

from corfu_universe.core.errors import BootstrapError, ProcessTimeoutError
from corfu_universe.core.process import ProcessResult
from corfu_universe.group.bootstrap import CommandBootstrapClient
from corfu_universe.group.topology import TopologyBuilder


@pytest.fixture
def layout():
    return TopologyBuilder(Mock()).build(["node9000:9000", "node9001:9001"])


def make_client(tmp_path, results):
    executor = Mock()
    executor.run.side_effect = results
    sleep = Mock()
    client = CommandBootstrapClient(Mock(), ["corfu_bootstrap_cluster"], tmp_path,
                                    executor=executor, sleep=sleep)
    return client, executor, sleep


def ok():
    return ProcessResult(returncode=0, stdout="", stderr="", duration=0.1)


def failed(stderr="not ready"):
    return ProcessResult(returncode=1, stdout="", stderr=stderr, duration=0.1)


def test_first_attempt_succeeds(tmp_path, layout):
    client, executor, sleep = make_client(tmp_path, [ok()])

    client.bootstrap(layout, retries=3, retry_timeout=10.0)

    layout_file = tmp_path / f"layout-{layout.cluster_id}.json"
    executor.run.assert_called_once_with(
        ["corfu_bootstrap_cluster", "-l", str(layout_file)], timeout=10.0
    )
    assert json.loads(layout_file.read_text())["layoutServers"] == ["node9000:9000", "node9001:9001"]
    sleep.assert_not_called()


def test_retries_until_success(tmp_path, layout):
    client, executor, sleep = make_client(
        tmp_path, [failed(), ProcessTimeoutError("slow", timeout=2.0), ok()]
    )

    client.bootstrap(layout, retries=3, retry_timeout=2.0)

    assert executor.run.call_count == 3
    assert sleep.call_count == 2
    sleep.assert_called_with(2.0)


def test_exhausted_retries(tmp_path, layout):
    client, executor, sleep = make_client(tmp_path, [failed("boom")] * 3)

    with pytest.raises(BootstrapError) as exc_info:
        client.bootstrap(layout, retries=3, retry_timeout=1.0)

    assert exc_info.value.attempts == 3
    assert "boom" in exc_info.value.message
    assert sleep.call_count == 2
