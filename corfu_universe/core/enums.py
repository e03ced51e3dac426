"""Core enumerations for the Corfu Universe framework.

Separated from types.py to break circular dependencies. This module contains
only enum definitions with no dependencies on other core modules.
"""

from enum import Enum


class Mode(Enum):
    """Corfu server operating mode."""

    SINGLE = "single"
    CLUSTER = "cluster"


class Persistence(Enum):
    """Where a Corfu server keeps its log."""

    DISK = "disk"
    MEMORY = "memory"


class NodeType(Enum):
    """Kind of node hosted by a group."""

    CORFU_SERVER = "corfu_server"
    CORFU_CLIENT = "corfu_client"


class BackendType(Enum):
    """Physical substrate the universe is deployed on."""

    DOCKER = "docker"
    VM = "vm"


class LogLevel(Enum):
    """Corfu server log level, passed verbatim on the command line."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class NodeState(Enum):
    """Last known lifecycle state of a node."""

    UNDEPLOYED = "undeployed"
    RUNNING = "running"
    STOPPED = "stopped"
    PAUSED = "paused"
    DESTROYED = "destroyed"


class UniverseState(Enum):
    """Lifecycle state of a whole universe."""

    EMPTY = "empty"
    PROVISIONING = "provisioning"
    DEPLOYING = "deploying"
    BOOTSTRAPPED = "bootstrapped"
    SHUT_DOWN = "shut_down"


class ReplicationMode(Enum):
    """Replication protocol named in a layout segment."""

    CHAIN_REPLICATION = "CHAIN_REPLICATION"
