"""Core type definitions for the Corfu Universe framework."""

import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from .enums import BackendType, LogLevel, Mode, NodeType, Persistence

# One timestamp per harness run so every node of a deployment logs side by side.
RUN_TIMESTAMP = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

SERVICE_LOG_SUBDIR = "corfu"


class NodeParams(BaseModel):
    """Identity and launch configuration of one Corfu server.

    The port is the identity key: name and endpoint are derived from it.
    Equality ignores the purely diagnostic fields (log directories, log level).
    """

    model_config = ConfigDict(frozen=True)

    port: int = Field(ge=1, le=65535)
    mode: Mode = Mode.CLUSTER
    persistence: Persistence = Persistence.DISK
    log_level: LogLevel = LogLevel.TRACE
    stream_log_dir: str = "/tmp/"
    base_log_dir: Path = Path("/tmp/corfu-universe/logs")
    node_type: NodeType = NodeType.CORFU_SERVER

    @property
    def name(self) -> str:
        return f"node{self.port}"

    @property
    def endpoint(self) -> str:
        return f"{self.name}:{self.port}"

    @property
    def server_log_dir(self) -> Path:
        """Per-deployment log directory: <base>/<service>/<name>_<timestamp>/."""
        return self.base_log_dir / SERVICE_LOG_SUBDIR / f"{self.name}_{RUN_TIMESTAMP}"

    def _identity(self) -> Tuple:
        return (type(self), self.port, self.mode, self.persistence, self.node_type)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, NodeParams):
            return self._identity() == other._identity()
        return False

    def __hash__(self) -> int:
        return hash(self._identity())


class VmNodeParams(NodeParams):
    """Node parameters for a server hosted on a named virtual machine."""

    vm_name: str = Field(min_length=1)

    def _identity(self) -> Tuple:
        return super()._identity() + (self.vm_name,)


class ClusterParams(BaseModel):
    """Configuration of one Corfu cluster (a group of nodes).

    The node list is append-only and guarded by a lock, since both initial
    deployment and ``CorfuCluster.add`` extend it.
    """

    name: str = Field(min_length=1)
    node_type: NodeType = NodeType.CORFU_SERVER
    nodes: List[NodeParams] = Field(default_factory=list)
    bootstrap_retries: int = Field(default=3, ge=1)
    retry_timeout: float = Field(default=10.0, gt=0)

    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    @model_validator(mode="after")
    def validate_unique_endpoints(self) -> "ClusterParams":
        from .errors import ConfigurationError

        endpoints = [node.endpoint for node in self.nodes]
        if len(endpoints) != len(set(endpoints)):
            raise ConfigurationError(
                f"Duplicate node endpoints in cluster {self.name}: {endpoints}"
            )
        return self

    def add(self, node_params: NodeParams) -> "ClusterParams":
        """Append a node, rejecting an endpoint that is already present."""
        from .errors import ConfigurationError

        with self._lock:
            if any(n.endpoint == node_params.endpoint for n in self.nodes):
                raise ConfigurationError(
                    f"Node {node_params.endpoint} already belongs to cluster {self.name}"
                )
            self.nodes.append(node_params)
        return self

    def nodes_params(self) -> Tuple[NodeParams, ...]:
        """Snapshot of the node list."""
        with self._lock:
            return tuple(self.nodes)

    def servers(self) -> Tuple[str, ...]:
        """Endpoints of all nodes, in configuration order."""
        return tuple(node.endpoint for node in self.nodes_params())


class UniverseParams(BaseModel):
    """Everything needed to deploy a universe of one or more clusters."""

    network_name: str = Field(default_factory=lambda: f"CorfuNet{uuid.uuid4().hex[:12]}")
    clusters: Dict[str, ClusterParams] = Field(default_factory=dict)
    timeout: float = Field(default=10.0, gt=0)
    cleanup_on_exit: bool = True

    def add(self, cluster_params: ClusterParams) -> "UniverseParams":
        from .errors import ConfigurationError

        if cluster_params.name in self.clusters:
            raise ConfigurationError(f"Cluster {cluster_params.name} is already defined")
        self.clusters[cluster_params.name] = cluster_params
        return self

    def get_cluster_params(self, name: str) -> ClusterParams:
        from .errors import ConfigurationError

        try:
            return self.clusters[name]
        except KeyError as e:
            raise ConfigurationError(f"Unknown cluster: {name}") from e


class VmUniverseParams(UniverseParams):
    """Universe parameters for the vSphere backend."""

    vsphere_url: str
    vsphere_username: str
    vsphere_password: str
    template_vm_name: str
    vm_username: str
    vm_password: str
    vm_ip_addresses: Dict[str, Optional[str]] = Field(default_factory=dict)
    server_jar_path: Path = Path("./target/corfu/infrastructure-0.2.2-SNAPSHOT-shaded.jar")

    # Guest customization applied to freshly cloned VMs
    domain: str = "eng.vmware.com"
    time_zone: str = "America/Los_Angeles"
    dns_servers: List[str] = Field(default_factory=lambda: ["10.172.40.1", "10.172.40.2"])
    dns_suffixes: List[str] = Field(default_factory=lambda: ["eng.vmware.com", "vmware.com"])
    gateway: str = "10.172.211.253"
    subnet_mask: str = "255.255.255.0"

    _ip_lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    def register_vm(self, vm_name: str) -> "VmUniverseParams":
        """Track ``vm_name`` without an address until it is provisioned."""
        with self._ip_lock:
            self.vm_ip_addresses.setdefault(vm_name, None)
        return self

    def update_ip_address(self, vm_name: str, ip_address: str) -> "VmUniverseParams":
        with self._ip_lock:
            self.vm_ip_addresses[vm_name] = ip_address
        return self

    def get_ip_address(self, vm_name: str) -> Optional[str]:
        with self._ip_lock:
            return self.vm_ip_addresses.get(vm_name)

    def vm_names(self) -> List[str]:
        with self._ip_lock:
            return list(self.vm_ip_addresses.keys())


class ClientParams(BaseModel):
    """Retry policy handed to the service's administrative client."""

    model_config = ConfigDict(frozen=True)

    num_retry: int = 5
    timeout: float = 30.0
    poll_period: float = 0.05


class TimeoutConfig(BaseModel):
    """Centralized timeout configuration to eliminate magical constants."""

    node_stop: float = 10.0
    ip_poll_interval: float = 5.0
    ip_poll_max_attempts: int = 60
    ssh_connect: float = 30.0
    exec_command: float = 60.0


class InfrastructureConfig(BaseModel):
    """Worker pool sizes for the concurrent phases."""

    vm_provision_workers: int = 10
    node_deploy_workers: int = 5


class UniverseConfig(BaseModel):
    """Main framework configuration."""

    backend: BackendType = BackendType.DOCKER
    log_level: str = "INFO"
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    infrastructure: InfrastructureConfig = Field(default_factory=InfrastructureConfig)
    docker_image: str = "corfu-server:0.2.2-SNAPSHOT"
    bootstrap_command: List[str] = Field(default_factory=lambda: ["corfu_bootstrap_cluster"])
    work_dir: Path = Path("/tmp/corfu-universe")

    @model_validator(mode="after")
    def validate_config(self) -> "UniverseConfig":
        """Validate configuration - NO SIDE EFFECTS."""
        from .errors import ConfigurationError

        if self.infrastructure.vm_provision_workers < 1:  # pylint: disable=no-member
            raise ConfigurationError("vm_provision_workers must be at least 1")
        if self.infrastructure.node_deploy_workers < 1:  # pylint: disable=no-member
            raise ConfigurationError("node_deploy_workers must be at least 1")
        if self.timeouts.ip_poll_max_attempts < 1:  # pylint: disable=no-member
            raise ConfigurationError("ip_poll_max_attempts must be at least 1")
        if not self.bootstrap_command:
            raise ConfigurationError("bootstrap_command must not be empty")

        return self
