"""
Corfu Universe: deployment and fault-injection harness for Corfu clusters.

Provisions Corfu server clusters onto local Docker containers or vSphere
virtual machines, bootstraps them into a single logical cluster, and drives
controlled failures (stop, kill, pause, network partition) against the
deployed nodes so that recovery behavior can be observed.
"""

__version__ = "1.0.0"

from .core.enums import BackendType, Mode, Persistence, NodeState, NodeType
from .core.types import (
    NodeParams,
    VmNodeParams,
    ClusterParams,
    UniverseParams,
    VmUniverseParams,
    UniverseConfig,
)

__all__ = [
    "__version__",
    "BackendType",
    "Mode",
    "Persistence",
    "NodeState",
    "NodeType",
    "NodeParams",
    "VmNodeParams",
    "ClusterParams",
    "UniverseParams",
    "VmUniverseParams",
    "UniverseConfig",
]
