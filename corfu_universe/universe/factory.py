"""Factory wiring a universe to its backend, bootstrap client and config."""

from typing import Optional

import docker
from docker.errors import DockerException

from ..core.cleanup import CleanupRegistry
from ..core.config import get_config
from ..core.enums import BackendType
from ..core.errors import ConfigurationError, UniverseError
from ..core.log import get_logger
from ..core.protocols import BootstrapClient
from ..core.types import UniverseConfig, UniverseParams, VmUniverseParams
from ..group.bootstrap import CommandBootstrapClient
from .universe import DockerUniverse, Universe, VmUniverse

logger = get_logger(__name__)


class UniverseFactory:
    """Builds universes from parameters and the framework configuration."""

    def __init__(self, config: Optional[UniverseConfig] = None,
                 bootstrap_client: Optional[BootstrapClient] = None) -> None:
        self._config = config or get_config()
        self._bootstrap_client = bootstrap_client or CommandBootstrapClient(
            logger,
            bootstrap_command=self._config.bootstrap_command,
            work_dir=self._config.work_dir,
        )

    @property
    def config(self) -> UniverseConfig:
        return self._config

    def build_docker_universe(self,
                              params: UniverseParams,
                              docker_client: Optional[docker.DockerClient] = None,
                              cleanup_registry: Optional[CleanupRegistry] = None) -> DockerUniverse:
        if docker_client is None:
            try:
                docker_client = docker.from_env()
            except DockerException as e:
                raise UniverseError(f"Can't connect to the docker engine: {e}") from e
        return DockerUniverse(
            params,
            self._config,
            self._bootstrap_client,
            docker_client,
            cleanup_registry=cleanup_registry,
        )

    def build_vm_universe(self, params: VmUniverseParams) -> VmUniverse:
        return VmUniverse(params, self._config, self._bootstrap_client)

    def build(self, params: UniverseParams, backend: Optional[BackendType] = None) -> Universe:
        """Build a universe for ``backend``, defaulting to the configured one."""
        backend = backend or self._config.backend
        if backend == BackendType.VM:
            if not isinstance(params, VmUniverseParams):
                raise ConfigurationError("The vm backend needs a vSphere section in the universe description")
            return self.build_vm_universe(params)
        return self.build_docker_universe(params)
