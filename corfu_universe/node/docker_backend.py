"""Container backend: each node is a privileged Docker container."""

from typing import List, Optional

import docker
from docker.errors import DockerException, NotFound

from ..core.cleanup import CleanupRegistry, get_cleanup_registry
from ..core.errors import NodeDeploymentError, NodeError, PartitionError
from ..core.log import get_logger
from ..core.types import NodeParams
from ..core.value_objects import FLUSH_COMMANDS, FaultRule, symmetric_partition_rules
from ..utils.filesystem import append_bytes
from .command_builder import ALL_NETWORK_INTERFACES, ServerCommandBuilder

logger = get_logger(__name__)

DEFAULT_BRIDGE_NETWORK = "bridge"


class ContainerBackend:
    """Maps node lifecycle operations onto Docker engine calls.

    Partitions are applied by running iptables inside the container, which
    is why containers are created privileged.
    """

    def __init__(self,
                 client: docker.DockerClient,
                 params: NodeParams,
                 network_name: str,
                 image: str,
                 command_builder: Optional[ServerCommandBuilder] = None,
                 cleanup_registry: Optional[CleanupRegistry] = None) -> None:
        self._client = client
        self._params = params
        self._network_name = network_name
        self._image = image
        self._command_builder = command_builder or ServerCommandBuilder(logger)
        self._cleanup_registry = cleanup_registry or get_cleanup_registry()
        self._container = None
        self._fault_rules: List[FaultRule] = []

    @property
    def name(self) -> str:
        return self._params.name

    def deploy(self) -> None:
        port = self._params.port
        command = self._command_builder.container_command(self._params)
        logger.info("Deploying container %s from %s", self.name, self._image)
        try:
            container = self._client.containers.create(
                self._image,
                command=command,
                name=self.name,
                hostname=self.name,
                privileged=True,
                ports={f"{port}/tcp": (ALL_NETWORK_INTERFACES, port)},
                detach=True,
            )
            self._container = container
            self._cleanup_registry.register(self._cleanup_key(), self._kill_on_exit)

            self._client.networks.get(DEFAULT_BRIDGE_NETWORK).disconnect(container)
            self._client.networks.get(self._network_name).connect(container)
            container.start()
        except DockerException as e:
            self._discard_created_container()
            raise NodeDeploymentError(
                f"Can't start container {self.name}: {e}",
                node_name=self.name,
                details={"image": self._image, "network": self._network_name},
            ) from e

    def stop(self, timeout: float) -> None:
        try:
            self._get_container().stop(timeout=int(timeout))
        except NotFound:
            logger.warning("Container %s no longer exists, nothing to stop", self.name)
        except DockerException as e:
            raise NodeError(f"Can't stop container {self.name}: {e}", node_name=self.name) from e

    def kill(self) -> None:
        self._call("kill")

    def pause(self) -> None:
        self._call("pause")

    def resume(self) -> None:
        self._call("unpause")

    def restart(self) -> None:
        self._call("restart")

    def disconnect(self) -> None:
        if self._fault_rules:
            logger.info("Container %s is already partitioned", self.name)
            return

        try:
            ipam_config = self._client.networks.get(self._network_name).attrs["IPAM"]["Config"][0]
            subnet = ipam_config["Subnet"]
            gateway = ipam_config["Gateway"]
        except (DockerException, KeyError, IndexError) as e:
            raise PartitionError(
                f"Can't read subnet of network {self._network_name}: {e}", node_name=self.name
            ) from e

        try:
            for rule in symmetric_partition_rules(subnet, gateway):
                self._exec(rule.append_command())
                self._fault_rules.append(rule)
        except PartitionError:
            self._rollback_partial_partition()
            raise

    def reconnect(self) -> None:
        for command in FLUSH_COMMANDS:
            self._exec(command)
        self._fault_rules.clear()

    def _rollback_partial_partition(self) -> None:
        """Flush whatever part of a failed partition made it into iptables."""
        for command in FLUSH_COMMANDS:
            try:
                self._exec(command)
            except PartitionError as e:
                logger.warning("Can't roll back partial partition of %s: %s", self.name, e)
        self._fault_rules.clear()

    def destroy(self) -> None:
        """Remove the container. Kill and log collection are done by the caller."""
        try:
            self._get_container().remove(force=True)
        except NotFound:
            logger.info("Container %s was already removed", self.name)
        except DockerException as e:
            raise NodeError(f"Can't destroy container {self.name}: {e}", node_name=self.name) from e
        finally:
            self._cleanup_registry.unregister(self._cleanup_key())
        self._container = None
        self._fault_rules.clear()

    def collect_logs(self) -> None:
        """Append container stdout and stderr to ``<server_log_dir>/<name>.log``."""
        log_file = self._params.server_log_dir / f"{self.name}.log"
        try:
            output = self._get_container().logs(stdout=True, stderr=True)
            append_bytes(log_file, output)
            logger.debug("Collected logs of %s into %s", self.name, log_file)
        except Exception as e:
            logger.error("Can't collect logs from container %s: %s", self.name, e)

    def active_fault_rules(self) -> List[FaultRule]:
        return list(self._fault_rules)

    def is_running(self) -> bool:
        return self._status() == "running"

    def is_paused(self) -> bool:
        return self._status() == "paused"

    def _status(self) -> Optional[str]:
        try:
            container = self._get_container()
            container.reload()
            return container.status
        except NotFound:
            return None
        except DockerException as e:
            raise NodeError(f"Can't inspect container {self.name}: {e}", node_name=self.name) from e

    def _get_container(self):
        if self._container is None:
            self._container = self._client.containers.get(self.name)
        return self._container

    def _call(self, operation: str) -> None:
        try:
            getattr(self._get_container(), operation)()
        except DockerException as e:
            raise NodeError(
                f"Can't {operation} container {self.name}: {e}", node_name=self.name
            ) from e

    def _exec(self, command: List[str]) -> None:
        logger.info("Executing in %s: %s", self.name, " ".join(command))
        try:
            result = self._get_container().exec_run(command)
        except DockerException as e:
            raise PartitionError(
                f"Can't execute {' '.join(command)} in {self.name}: {e}", node_name=self.name
            ) from e
        output = result.output.decode(errors="replace") if result.output else ""
        if result.exit_code != 0:
            raise PartitionError(
                f"Command {' '.join(command)} failed in {self.name} with exit code {result.exit_code}",
                node_name=self.name,
                details={"exit_code": result.exit_code, "output": output},
            )
        logger.debug("docker exec result: %s", output.strip())

    def _discard_created_container(self) -> None:
        """Remove a container that was created but never started."""
        if self._container is None:
            return
        try:
            self._container.remove(force=True)
        except DockerException as e:
            logger.warning("Can't remove half-deployed container %s: %s", self.name, e)
            return
        self._cleanup_registry.unregister(self._cleanup_key())
        self._container = None

    def _cleanup_key(self) -> str:
        return f"container:{self.name}"

    def _kill_on_exit(self) -> None:
        try:
            self._get_container().kill()
        except NotFound:
            pass
