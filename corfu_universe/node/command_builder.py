"""Corfu server command line builder for the container and remote backends."""

import shlex
from typing import List, Protocol

from ..core.enums import Mode, Persistence
from ..core.errors import ConfigurationError
from ..core.log import Logger
from ..core.types import NodeParams

ALL_NETWORK_INTERFACES = "0.0.0.0"
SERVER_MAIN_CLASS = "org.corfudb.infrastructure.CorfuServer"
REMOTE_JAR_NAME = "corfu-server.jar"
REMOTE_CONSOLE_LOG = "console.log"


class CommandBuilder(Protocol):
    """Protocol for command builders to enable dependency injection."""

    def server_args(self, params: NodeParams) -> List[str]:
        """Build the server's own command line arguments."""


class ServerCommandBuilder:
    """Builds Corfu server command lines from node parameters."""

    def __init__(self, logger: Logger) -> None:
        self._logger = logger

    def server_args(self, params: NodeParams) -> List[str]:
        """Arguments understood by the server main class, port last."""
        args = ["-a", ALL_NETWORK_INTERFACES]

        if params.persistence == Persistence.DISK:
            if not params.stream_log_dir:
                raise ConfigurationError(
                    f"Invalid log dir in disk persistence mode for {params.name}"
                )
            args.extend(["-l", params.stream_log_dir])
        elif params.persistence == Persistence.MEMORY:
            args.append("-m")

        if params.mode == Mode.SINGLE:
            args.append("-s")

        args.extend(["-d", params.log_level.value, str(params.port)])

        self._logger.debug("Command line parameters for %s: %s", params.name, " ".join(args))
        return args

    def container_command(self, params: NodeParams) -> List[str]:
        """Entrypoint command run inside the server image."""
        java = f"java -cp *.jar {SERVER_MAIN_CLASS} {shlex.join(self.server_args(params))}"
        return ["sh", "-c", java]

    def remote_launch_command(self, params: NodeParams) -> str:
        """Shell line starting the server in the background on a remote host.

        Server output goes to ``./<name>/console.log`` so log collection can
        fetch it later.
        """
        workdir = f"./{params.name}"
        java = (
            f"nohup java -cp {workdir}/*.jar {SERVER_MAIN_CLASS} "
            f"{shlex.join(self.server_args(params))} "
            f"> {workdir}/{REMOTE_CONSOLE_LOG} 2>&1 &"
        )
        return f"sh -c {shlex.quote(java)}"


def process_signature(params: NodeParams) -> str:
    """``pkill -f`` pattern matching only this node's JVM.

    The bracket keeps the pattern from matching the pkill command line itself.
    """
    return f"[{params.name[0]}]{params.name[1:]}/{REMOTE_JAR_NAME}"
