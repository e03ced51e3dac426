"""Corfu cluster orchestration: deploy members, bootstrap once, tear down."""

import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional, Protocol, Sequence

import docker

from ..core.cleanup import CleanupRegistry
from ..core.errors import ClusterError, NodeDeploymentError, NodeError
from ..core.log import Logger, get_logger, log_cluster_event, log_context
from ..core.protocols import BootstrapClient
from ..core.types import ClusterParams, NodeParams, UniverseConfig, UniverseParams, VmUniverseParams
from ..node.command_builder import ServerCommandBuilder
from ..node.docker_backend import ContainerBackend
from ..node.node import Node
from ..node.remote_backend import RemoteBackend
from ..node.remote_operations import RemoteOperations
from ..utils.filesystem import ensure_dir
from .topology import Layout, TopologyBuilder

logger = get_logger(__name__)

NodeFactory = Callable[[NodeParams], Node]
DeployOne = Callable[[NodeParams], Node]


class NodeRegistry:
    """Thread-safe name to Node map with snapshot reads."""

    def __init__(self) -> None:
        self._nodes: Dict[str, Node] = {}
        self._lock = threading.RLock()

    def register(self, node: Node) -> None:
        with self._lock:
            if node.name in self._nodes:
                raise ClusterError(f"Node {node.name} is already registered")
            self._nodes[node.name] = node

    def unregister(self, name: str) -> None:
        with self._lock:
            self._nodes.pop(name, None)

    def get(self, name: str) -> Optional[Node]:
        with self._lock:
            return self._nodes.get(name)

    def snapshot(self) -> Dict[str, Node]:
        with self._lock:
            return dict(self._nodes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)


class NodeDeployStrategy(Protocol):
    """Strategy interface for deploying a batch of nodes."""

    def deploy_nodes(self, nodes_params: Sequence[NodeParams], deploy_one: DeployOne) -> List[Node]:
        """Deploy every node, returning them in ``nodes_params`` order."""


class SequentialDeployStrategy:
    """Deploys nodes one at a time, creating each server log directory first."""

    def __init__(self, logger: Logger) -> None:
        self._logger = logger

    def deploy_nodes(self, nodes_params: Sequence[NodeParams], deploy_one: DeployOne) -> List[Node]:
        nodes = []
        for params in nodes_params:
            log_dir = params.server_log_dir
            if not log_dir.exists():
                ensure_dir(log_dir)
                self._logger.info("Created new corfu log directory at %s", log_dir)
            nodes.append(deploy_one(params))
        return nodes


class ConcurrentDeployStrategy:
    """Deploys nodes on a bounded worker pool and waits for all of them.

    Deployment order within the batch is not guaranteed. The first failure
    is raised only after every submitted deployment has settled.
    """

    def __init__(self, logger: Logger, max_workers: int) -> None:
        self._logger = logger
        self._max_workers = max_workers

    def deploy_nodes(self, nodes_params: Sequence[NodeParams], deploy_one: DeployOne) -> List[Node]:
        if not nodes_params:
            return []

        with ThreadPoolExecutor(max_workers=self._max_workers,
                                thread_name_prefix="NodeDeploy") as executor:
            futures = [executor.submit(deploy_one, params) for params in nodes_params]
            wait(futures)

        nodes = []
        failures = []
        for params, future in zip(nodes_params, futures):
            error = future.exception()
            if error is not None:
                self._logger.error("Deployment of %s failed: %s", params.name, error)
                failures.append((params, error))
            else:
                nodes.append(future.result())

        if failures:
            params, error = failures[0]
            raise NodeDeploymentError(
                f"Failed to deploy {len(failures)} of {len(nodes_params)} nodes, "
                f"first failure on {params.name}: {error}",
                node_name=params.name,
                details={"failed_nodes": [p.name for p, _ in failures]},
            ) from error
        return nodes


class CorfuCluster:
    """A named group of Corfu servers bootstrapped into one logical cluster.

    Backend specifics come in through the node factory, the deploy strategy
    and the endpoint resolver; the orchestration itself is backend-agnostic.
    """

    def __init__(self,
                 params: ClusterParams,
                 node_factory: NodeFactory,
                 strategy: NodeDeployStrategy,
                 bootstrap_client: BootstrapClient,
                 endpoint_resolver: Optional[Callable[[NodeParams], str]] = None,
                 topology_builder: Optional[TopologyBuilder] = None) -> None:
        self._params = params
        self._node_factory = node_factory
        self._strategy = strategy
        self._bootstrap_client = bootstrap_client
        self._endpoint_resolver = endpoint_resolver or (lambda node_params: node_params.endpoint)
        self._topology_builder = topology_builder or TopologyBuilder(logger)
        self._registry = NodeRegistry()
        self._layout: Optional[Layout] = None

    @property
    def name(self) -> str:
        return self._params.name

    @property
    def params(self) -> ClusterParams:
        return self._params

    @property
    def layout(self) -> Optional[Layout]:
        """Layout submitted at bootstrap, if bootstrap has happened."""
        return self._layout

    def deploy(self) -> "CorfuCluster":
        """Deploy every configured node, then bootstrap the cluster once.

        Raises:
            NodeDeploymentError: If any node could not be deployed
            BootstrapError: If the bootstrap retry budget was exhausted
        """
        with log_context(cluster=self.name):
            nodes_params = self._params.nodes_params()
            log_cluster_event(logger, "deploying", self.name, nodes=len(nodes_params))
            self._strategy.deploy_nodes(nodes_params, self._deploy_node)
            self.bootstrap()
            log_cluster_event(logger, "deployed", self.name, servers=list(self._params.servers()))
        return self

    def bootstrap(self) -> Layout:
        """Build the initial layout from the current members and submit it."""
        endpoints = [self._endpoint_resolver(p) for p in self._params.nodes_params()]
        layout = self._topology_builder.build(endpoints)
        self._bootstrap_client.bootstrap(
            layout, self._params.bootstrap_retries, self._params.retry_timeout
        )
        self._layout = layout
        log_cluster_event(logger, "bootstrapped", self.name, cluster_id=layout.cluster_id)
        return layout

    def add(self, node_params: NodeParams) -> Node:
        """Deploy one more node. The cluster is not re-bootstrapped."""
        self._params.add(node_params)
        node = self._strategy.deploy_nodes([node_params], self._deploy_node)[0]
        log_cluster_event(logger, "node added", self.name, node_name=node.name)
        return node

    def stop(self, timeout: float) -> None:
        self._for_each_node("stop", lambda node: node.stop(timeout))

    def kill(self) -> None:
        self._for_each_node("kill", lambda node: node.kill())

    def destroy(self) -> None:
        """Destroy every node. Destroyed nodes stop being members."""
        def destroy_one(node: Node) -> None:
            node.destroy()
            self._registry.unregister(node.name)

        self._for_each_node("destroy", destroy_one)

    def get_node(self, name: str) -> Optional[Node]:
        return self._registry.get(name)

    def nodes(self) -> Dict[str, Node]:
        """Snapshot of the live members."""
        return self._registry.snapshot()

    def _deploy_node(self, node_params: NodeParams) -> Node:
        node = self._node_factory(node_params)
        node.deploy()
        self._registry.register(node)
        return node

    def _for_each_node(self, operation: str, action: Callable[[Node], None]) -> None:
        """Apply ``action`` to every node; one failing node never stops the rest."""
        for node in self._registry.snapshot().values():
            try:
                action(node)
            except Exception as e:
                logger.warning("Can't %s node %s in cluster %s: %s", operation, node.name, self.name, e)


class DockerCorfuCluster(CorfuCluster):
    """Cluster whose nodes are containers on the universe network."""

    def __init__(self,
                 params: ClusterParams,
                 universe_params: UniverseParams,
                 docker_client: docker.DockerClient,
                 config: UniverseConfig,
                 bootstrap_client: BootstrapClient,
                 cleanup_registry: Optional[CleanupRegistry] = None) -> None:
        command_builder = ServerCommandBuilder(logger)

        def node_factory(node_params: NodeParams) -> Node:
            backend = ContainerBackend(
                docker_client,
                node_params,
                network_name=universe_params.network_name,
                image=config.docker_image,
                command_builder=command_builder,
                cleanup_registry=cleanup_registry,
            )
            return Node(node_params, backend, backend_name="docker")

        super().__init__(
            params,
            node_factory=node_factory,
            strategy=SequentialDeployStrategy(logger),
            bootstrap_client=bootstrap_client,
        )


class VmCorfuCluster(CorfuCluster):
    """Cluster whose nodes run on vSphere VMs; endpoints use the VM IP address."""

    def __init__(self,
                 params: ClusterParams,
                 universe_params: VmUniverseParams,
                 remote: RemoteOperations,
                 config: UniverseConfig,
                 bootstrap_client: BootstrapClient) -> None:
        command_builder = ServerCommandBuilder(logger)

        def node_factory(node_params: NodeParams) -> Node:
            backend = RemoteBackend(node_params, universe_params, remote, command_builder)
            return Node(node_params, backend, backend_name="vm")

        def endpoint_resolver(node_params: NodeParams) -> str:
            ip_address = universe_params.get_ip_address(node_params.vm_name)
            if not ip_address:
                raise NodeError(f"VM {node_params.vm_name} has no IP address",
                                node_name=node_params.name)
            return f"{ip_address}:{node_params.port}"

        super().__init__(
            params,
            node_factory=node_factory,
            strategy=ConcurrentDeployStrategy(logger, config.infrastructure.node_deploy_workers),
            bootstrap_client=bootstrap_client,
            endpoint_resolver=endpoint_resolver,
        )
