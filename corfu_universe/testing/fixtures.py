"""Predefined parameters for scenario tests.

The defaults describe the canonical three-node cluster on ports
9000..9002, persisted to disk, logging at TRACE.
"""

from typing import List, Optional

from ..core.enums import LogLevel, Mode, NodeType, Persistence
from ..core.types import (
    ClientParams,
    ClusterParams,
    NodeParams,
    UniverseParams,
    VmNodeParams,
    VmUniverseParams,
)

DEFAULT_BASE_PORT = 9000
DEFAULT_NUM_NODES = 3
DEFAULT_CLUSTER_NAME = "corfuCluster"
DEFAULT_VM_NAME_PREFIX = "corfu-vm-"


class FixtureConst:
    """Timeouts (seconds) and sizes shared by scenario tests."""

    DEFAULT_TIMEOUT = 30
    DEFAULT_TIMEOUT_MEDIUM = 60
    DEFAULT_TIMEOUT_LONG = 100
    DEFAULT_STREAM_NAME = "stream"
    DEFAULT_TABLE_ITER = 100


def client_params(num_retry: int = 5, timeout: float = 30.0, poll_period: float = 0.05) -> ClientParams:
    return ClientParams(num_retry=num_retry, timeout=timeout, poll_period=poll_period)


def single_server_params(port: int = DEFAULT_BASE_PORT, mode: Mode = Mode.CLUSTER) -> NodeParams:
    return NodeParams(
        port=port,
        mode=mode,
        persistence=Persistence.DISK,
        log_level=LogLevel.TRACE,
        stream_log_dir="/tmp/",
    )


def multiple_servers_params(num_nodes: int = DEFAULT_NUM_NODES,
                            base_port: int = DEFAULT_BASE_PORT) -> List[NodeParams]:
    return [single_server_params(port=base_port + i) for i in range(num_nodes)]


def cluster_params(name: str = DEFAULT_CLUSTER_NAME,
                   num_nodes: int = DEFAULT_NUM_NODES,
                   base_port: int = DEFAULT_BASE_PORT,
                   nodes: Optional[List[NodeParams]] = None) -> ClusterParams:
    params = ClusterParams(name=name, node_type=NodeType.CORFU_SERVER)
    for node in nodes if nodes is not None else multiple_servers_params(num_nodes, base_port):
        params.add(node)
    return params


def universe_params(*clusters: ClusterParams) -> UniverseParams:
    """Universe holding ``clusters``, or the default cluster when none are given."""
    params = UniverseParams()
    for cluster in clusters or (cluster_params(),):
        params.add(cluster)
    return params


def vm_universe_params(vsphere_url: str,
                       vsphere_username: str,
                       vsphere_password: str,
                       template_vm_name: str,
                       vm_username: str,
                       vm_password: str,
                       num_nodes: int = DEFAULT_NUM_NODES,
                       base_port: int = DEFAULT_BASE_PORT,
                       vm_name_prefix: str = DEFAULT_VM_NAME_PREFIX) -> VmUniverseParams:
    """One node per VM, named ``<prefix>1`` .. ``<prefix>N``."""
    params = VmUniverseParams(
        vsphere_url=vsphere_url,
        vsphere_username=vsphere_username,
        vsphere_password=vsphere_password,
        template_vm_name=template_vm_name,
        vm_username=vm_username,
        vm_password=vm_password,
    )
    nodes = []
    for i in range(num_nodes):
        vm_name = f"{vm_name_prefix}{i + 1}"
        params.register_vm(vm_name)
        nodes.append(VmNodeParams(
            port=base_port + i,
            mode=Mode.CLUSTER,
            persistence=Persistence.DISK,
            log_level=LogLevel.TRACE,
            stream_log_dir="/tmp/",
            vm_name=vm_name,
        ))
    return params.add(cluster_params(nodes=nodes))
