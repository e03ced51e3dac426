"""Universe orchestration: the top-level owner of clusters and their hosts."""

import threading
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Optional

import docker
from docker.errors import DockerException, NotFound

from ..core.cleanup import CleanupRegistry, get_cleanup_registry
from ..core.enums import NodeType, UniverseState
from ..core.errors import UniverseError
from ..core.log import get_logger, log_context
from ..core.protocols import BootstrapClient
from ..core.types import ClusterParams, UniverseConfig, UniverseParams, VmUniverseParams
from ..group.cluster import CorfuCluster, DockerCorfuCluster, VmCorfuCluster
from ..node.remote_operations import RemoteOperations
from .vm_provisioner import VmProvisioner

logger = get_logger(__name__)


class Universe(ABC):
    """Deploys the configured clusters in order and shuts them down.

    State machine: EMPTY -> PROVISIONING (VM only) -> DEPLOYING ->
    BOOTSTRAPPED -> SHUT_DOWN. There is no way back from SHUT_DOWN.

    Transitions are serialized by a state lock. The cluster map has its
    own lock so reads never wait for a deploy or shutdown in progress.
    """

    def __init__(self, params: UniverseParams, config: UniverseConfig,
                 bootstrap_client: BootstrapClient) -> None:
        self._params = params
        self._config = config
        self._bootstrap_client = bootstrap_client
        self._universe_id = str(uuid.uuid4())
        self._state = UniverseState.EMPTY
        self._groups: Dict[str, CorfuCluster] = {}
        self._lock = threading.Lock()
        self._state_lock = threading.RLock()

    @property
    def universe_id(self) -> str:
        return self._universe_id

    @property
    def params(self) -> UniverseParams:
        return self._params

    @property
    def state(self) -> UniverseState:
        return self._state

    def deploy(self) -> "Universe":
        """Provision hosts if needed, then deploy every cluster one after another.

        Raises:
            UniverseError: If the universe was already deployed or shut down
        """
        with self._state_lock:
            if self._state != UniverseState.EMPTY:
                raise UniverseError(
                    f"Universe {self._universe_id} can't be deployed from state {self._state.value}"
                )
            logger.info("Deploy the universe: %s", self._universe_id)

            self._provision()
            self._state = UniverseState.DEPLOYING
            self._prepare()

            for cluster_params in self._params.clusters.values():
                with log_context(universe=self._universe_id):
                    self._deploy_cluster(cluster_params)

            self._state = UniverseState.BOOTSTRAPPED
            logger.info("Universe %s deployed with clusters %s",
                        self._universe_id, list(self.groups()))
            return self

    def shutdown(self) -> None:
        """Stop every cluster with the universe timeout.

        A cluster that fails to stop is logged and skipped.
        """
        with self._state_lock:
            if self._state == UniverseState.SHUT_DOWN:
                logger.info("Universe %s is already shut down", self._universe_id)
                return
            logger.info("Shutdown the universe: %s", self._universe_id)

            for name, group in self.groups().items():
                try:
                    group.stop(self._params.timeout)
                except Exception as e:
                    logger.warning("Can't stop group %s: %s", name, e)

            self._teardown()
            self._state = UniverseState.SHUT_DOWN

    def get_group(self, name: str) -> Optional[CorfuCluster]:
        with self._lock:
            return self._groups.get(name)

    def groups(self) -> Dict[str, CorfuCluster]:
        """Snapshot of the deployed clusters."""
        with self._lock:
            return dict(self._groups)

    def _deploy_cluster(self, cluster_params: ClusterParams) -> None:
        if cluster_params.node_type != NodeType.CORFU_SERVER:
            raise UniverseError(
                f"Node type {cluster_params.node_type.value} is not supported, "
                f"cluster: {cluster_params.name}"
            )
        cluster = self._create_cluster(cluster_params)
        # Registered before deploy so that shutdown reaches partially deployed clusters
        with self._lock:
            self._groups[cluster_params.name] = cluster
        cluster.deploy()

    @abstractmethod
    def _create_cluster(self, cluster_params: ClusterParams) -> CorfuCluster:
        """Build the backend-specific cluster for ``cluster_params``."""

    def _provision(self) -> None:
        """Hook for backends that must create hosts before deployment."""

    def _prepare(self) -> None:
        """Hook run once before the first cluster is deployed."""

    def _teardown(self) -> None:
        """Hook run once after every cluster has been stopped."""

    def __enter__(self) -> "Universe":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()


class DockerUniverse(Universe):
    """Universe of container clusters on one user-defined bridge network."""

    def __init__(self,
                 params: UniverseParams,
                 config: UniverseConfig,
                 bootstrap_client: BootstrapClient,
                 docker_client: docker.DockerClient,
                 cleanup_registry: Optional[CleanupRegistry] = None) -> None:
        super().__init__(params, config, bootstrap_client)
        self._docker = docker_client
        if cleanup_registry is None:
            cleanup_registry = (get_cleanup_registry() if params.cleanup_on_exit
                                else CleanupRegistry(register_atexit=False))
        self._cleanup_registry = cleanup_registry
        self._network = None

    def _prepare(self) -> None:
        name = self._params.network_name
        try:
            self._docker.networks.get(name)
            logger.info("Using existing docker network %s", name)
        except NotFound:
            try:
                self._network = self._docker.networks.create(name, driver="bridge")
            except DockerException as e:
                raise UniverseError(f"Can't create docker network {name}: {e}") from e
            logger.info("Created docker network %s", name)
        except DockerException as e:
            raise UniverseError(f"Can't inspect docker network {name}: {e}") from e

    def _teardown(self) -> None:
        if self._network is None:
            return
        try:
            self._network.remove()
            logger.info("Removed docker network %s", self._params.network_name)
        except DockerException as e:
            logger.warning("Can't remove docker network %s: %s", self._params.network_name, e)
        self._network = None

    def _create_cluster(self, cluster_params: ClusterParams) -> CorfuCluster:
        return DockerCorfuCluster(
            cluster_params,
            self._params,
            self._docker,
            self._config,
            self._bootstrap_client,
            cleanup_registry=self._cleanup_registry,
        )


class VmUniverse(Universe):
    """Universe whose clusters run on vSphere VMs, provisioned on demand."""

    def __init__(self,
                 params: VmUniverseParams,
                 config: UniverseConfig,
                 bootstrap_client: BootstrapClient,
                 provisioner: Optional[VmProvisioner] = None,
                 remote: Optional[RemoteOperations] = None) -> None:
        super().__init__(params, config, bootstrap_client)
        self._vm_params = params
        self._provisioner = provisioner or VmProvisioner(
            params,
            timeouts=config.timeouts,
            max_workers=config.infrastructure.vm_provision_workers,
        )
        self._remote = remote or RemoteOperations(
            connect_timeout=config.timeouts.ssh_connect,
            command_timeout=config.timeouts.exec_command,
        )

    def _provision(self) -> None:
        self._state = UniverseState.PROVISIONING
        for cluster_params in self._params.clusters.values():
            for node_params in cluster_params.nodes_params():
                vm_name = getattr(node_params, "vm_name", None)
                if vm_name:
                    self._vm_params.register_vm(vm_name)
        self._provisioner.provision_all()

    def _create_cluster(self, cluster_params: ClusterParams) -> CorfuCluster:
        return VmCorfuCluster(
            cluster_params,
            self._vm_params,
            self._remote,
            self._config,
            self._bootstrap_client,
        )
