"""Cluster orchestration: topology, bootstrap and the CorfuCluster group."""

from .bootstrap import CommandBootstrapClient
from .cluster import (
    ConcurrentDeployStrategy,
    CorfuCluster,
    DockerCorfuCluster,
    NodeRegistry,
    SequentialDeployStrategy,
    VmCorfuCluster,
)
from .topology import Layout, LayoutSegment, LayoutStripe, TopologyBuilder

__all__ = [
    "CommandBootstrapClient",
    "CorfuCluster",
    "DockerCorfuCluster",
    "VmCorfuCluster",
    "NodeRegistry",
    "SequentialDeployStrategy",
    "ConcurrentDeployStrategy",
    "Layout",
    "LayoutSegment",
    "LayoutStripe",
    "TopologyBuilder",
]
