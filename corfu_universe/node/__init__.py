"""Node lifecycle: the Node contract and its container and remote-host backends."""

from .node import Node
from .docker_backend import ContainerBackend
from .remote_backend import RemoteBackend
from .remote_operations import CommandResult, RemoteOperations

__all__ = [
    "Node",
    "ContainerBackend",
    "RemoteBackend",
    "RemoteOperations",
    "CommandResult",
]
