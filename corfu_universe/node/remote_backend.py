"""Remote-host backend: each node is a JVM started over SSH on a VM."""

import shlex
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import List, Optional

from ..core.errors import (
    NodeDeploymentError,
    NodeError,
    RemoteExecutionError,
    UnsupportedOperationError,
)
from ..core.log import get_logger
from ..core.types import VmNodeParams, VmUniverseParams
from ..core.value_objects import FaultRule
from .command_builder import REMOTE_CONSOLE_LOG, REMOTE_JAR_NAME, ServerCommandBuilder, process_signature
from .remote_operations import CommandResult, RemoteOperations

logger = get_logger(__name__)

# pkill/pgrep exit status when no process matched
NO_PROCESS_MATCHED = 1


class RemoteBackend:
    """Maps node lifecycle operations onto commands run on the node's VM.

    Processes are addressed by a ``pkill -f`` signature built from the node
    directory, so several nodes can share one VM.
    """

    def __init__(self,
                 params: VmNodeParams,
                 universe_params: VmUniverseParams,
                 remote: RemoteOperations,
                 command_builder: Optional[ServerCommandBuilder] = None) -> None:
        self._params = params
        self._universe_params = universe_params
        self._remote = remote
        self._command_builder = command_builder or ServerCommandBuilder(logger)
        self._signature = shlex.quote(process_signature(params))

    @property
    def name(self) -> str:
        return self._params.name

    @property
    def host(self) -> str:
        ip_address = self._universe_params.get_ip_address(self._params.vm_name)
        if not ip_address:
            raise NodeError(
                f"VM {self._params.vm_name} of node {self.name} has no IP address",
                node_name=self.name,
            )
        return ip_address

    def deploy(self) -> None:
        workdir = f"./{self.name}"
        try:
            self._check(self._run(f"mkdir -p {workdir}"), "create node directory")
            self._remote.copy_file(
                self.host,
                self._universe_params.vm_username,
                self._universe_params.vm_password,
                self._universe_params.server_jar_path,
                f"{workdir}/{REMOTE_JAR_NAME}",
            )
            self._launch()
        except (RemoteExecutionError, NodeError) as e:
            raise NodeDeploymentError(
                f"Can't deploy {self.name} on {self._params.vm_name}: {e}",
                node_name=self.name,
                details={"vm_name": self._params.vm_name},
            ) from e

    def stop(self, timeout: float) -> None:
        """Graceful pkill raced against ``timeout``; falls back to kill."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"stop-{self.name}")
        future = executor.submit(self._run, f"pkill -f {self._signature}")
        try:
            future.result(timeout=timeout)
        except FutureTimeoutError:
            logger.warning("Graceful stop of %s timed out after %ss, killing", self.name, timeout)
            self.kill()
        except (RemoteExecutionError, NodeError) as e:
            logger.error("Can't stop %s gracefully: %s", self.name, e)
            self.kill()
        except KeyboardInterrupt:
            logger.error("Stop of %s interrupted, killing", self.name)
            self.kill()
            raise
        finally:
            executor.shutdown(wait=False)

    def kill(self) -> None:
        self._signal("-9")

    def pause(self) -> None:
        self._signal("-STOP")

    def resume(self) -> None:
        self._signal("-CONT")

    def restart(self) -> None:
        try:
            self._launch()
        except RemoteExecutionError as e:
            raise NodeError(f"Can't restart {self.name}: {e}", node_name=self.name) from e

    def disconnect(self) -> None:
        raise UnsupportedOperationError(
            "Network partition is not supported on the remote-host backend", node_name=self.name
        )

    def reconnect(self) -> None:
        raise UnsupportedOperationError(
            "Network partition is not supported on the remote-host backend", node_name=self.name
        )

    def destroy(self) -> None:
        """Remove the node directory. Kill and log collection are done by the caller."""
        try:
            self._check(self._run(f"rm -rf ./{self.name}"), "remove node directory")
        except RemoteExecutionError as e:
            raise NodeError(f"Can't destroy {self.name}: {e}", node_name=self.name) from e

    def collect_logs(self) -> None:
        log_file = self._params.server_log_dir / f"{self.name}.log"
        try:
            self._remote.fetch_file(
                self.host,
                self._universe_params.vm_username,
                self._universe_params.vm_password,
                f"./{self.name}/{REMOTE_CONSOLE_LOG}",
                log_file,
            )
            logger.debug("Collected logs of %s into %s", self.name, log_file)
        except Exception as e:
            logger.error("Can't collect logs from %s: %s", self.name, e)

    def active_fault_rules(self) -> List[FaultRule]:
        return []

    def is_running(self) -> bool:
        states = self._process_states()
        return any(not state.startswith(("T", "Z")) for state in states)

    def is_paused(self) -> bool:
        states = self._process_states()
        return bool(states) and all(state.startswith("T") for state in states)

    def _process_states(self) -> List[str]:
        """``ps`` state codes of every process matching the node signature."""
        command = f"for pid in $(pgrep -f {self._signature}); do ps -o stat= -p $pid; done"
        try:
            result = self._run(command)
        except RemoteExecutionError as e:
            raise NodeError(f"Can't probe {self.name}: {e}", node_name=self.name) from e
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def _launch(self) -> None:
        self._check(self._run(self._command_builder.remote_launch_command(self._params)),
                    "launch server")

    def _signal(self, signal: str) -> None:
        try:
            result = self._run(f"pkill {signal} -f {self._signature}")
        except RemoteExecutionError as e:
            raise NodeError(f"Can't signal {self.name} with {signal}: {e}",
                            node_name=self.name) from e
        if result.exit_status == NO_PROCESS_MATCHED:
            logger.info("No process of %s matched for pkill %s", self.name, signal)
            return
        self._check(result, f"pkill {signal}")

    def _run(self, command: str) -> CommandResult:
        return self._remote.run_command(
            self.host,
            self._universe_params.vm_username,
            self._universe_params.vm_password,
            command,
        )

    def _check(self, result: CommandResult, action: str) -> None:
        if not result.ok:
            raise NodeError(
                f"Failed to {action} for {self.name}: exit status {result.exit_status}",
                node_name=self.name,
                details={"stderr": result.stderr},
            )
