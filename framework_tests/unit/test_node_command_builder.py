"""Tests for server command line construction."""

from unittest.mock import Mock

import pytest

from corfu_universe.core.enums import LogLevel, Mode, Persistence
from corfu_universe.core.errors import ConfigurationError
from corfu_universe.core.types import NodeParams
from corfu_universe.node.command_builder import (
    SERVER_MAIN_CLASS,
    ServerCommandBuilder,
    process_signature,
)


@pytest.fixture
def builder():
    return ServerCommandBuilder(Mock())


class TestServerArgs:
    def test_disk_cluster_node(self, builder):
        params = NodeParams(port=9000, stream_log_dir="/tmp/", log_level=LogLevel.TRACE)

        assert builder.server_args(params) == ["-a", "0.0.0.0", "-l", "/tmp/", "-d", "TRACE", "9000"]

    def test_memory_single_node(self, builder):
        params = NodeParams(port=9001, persistence=Persistence.MEMORY, mode=Mode.SINGLE,
                            log_level=LogLevel.INFO)

        assert builder.server_args(params) == ["-a", "0.0.0.0", "-m", "-s", "-d", "INFO", "9001"]

    def test_disk_without_log_dir_rejected(self, builder):
        params = NodeParams(port=9000, stream_log_dir="")

        with pytest.raises(ConfigurationError):
            builder.server_args(params)

    def test_port_is_last(self, builder):
        args = builder.server_args(NodeParams(port=9123))

        assert args[-1] == "9123"


class TestLaunchCommands:
    def test_container_command(self, builder):
        command = builder.container_command(NodeParams(port=9000))

        assert command[:2] == ["sh", "-c"]
        assert command[2].startswith(f"java -cp *.jar {SERVER_MAIN_CLASS} ")
        assert command[2].endswith("-d TRACE 9000")

    def test_remote_launch_command(self, builder):
        command = builder.remote_launch_command(NodeParams(port=9000))

        assert command.startswith("sh -c '")
        assert "nohup java -cp ./node9000/*.jar" in command
        assert "> ./node9000/console.log 2>&1 &" in command


def test_process_signature_does_not_match_itself():
    assert process_signature(NodeParams(port=9000)) == "[n]ode9000/corfu-server.jar"
