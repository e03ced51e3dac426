"""SSH command execution and SFTP file transfer on remote hosts."""

from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import paramiko

from ..core.errors import RemoteExecutionError
from ..core.log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one remote command."""

    exit_status: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class RemoteOperations:
    """Opens a fresh SSH session per operation.

    Host keys are accepted without verification: the hosts are freshly
    cloned test VMs whose keys are unknown in advance.
    """

    def __init__(self, connect_timeout: float = 30.0, command_timeout: Optional[float] = 60.0) -> None:
        self._connect_timeout = connect_timeout
        self._command_timeout = command_timeout

    def _connect(self, host: str, user: str, password: str) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                host,
                username=user,
                password=password,
                timeout=self._connect_timeout,
                allow_agent=False,
                look_for_keys=False,
            )
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise RemoteExecutionError(f"Can't connect to {user}@{host}: {e}", host=host) from e
        return client

    def run_command(self, host: str, user: str, password: str, command: str) -> CommandResult:
        """Run ``command`` and wait for its exit status."""
        logger.debug("Executing on %s: %s", host, command)
        with closing(self._connect(host, user, password)) as client:
            try:
                _, stdout, stderr = client.exec_command(command, timeout=self._command_timeout)
                exit_status = stdout.channel.recv_exit_status()
                result = CommandResult(
                    exit_status=exit_status,
                    stdout=stdout.read().decode(errors="replace"),
                    stderr=stderr.read().decode(errors="replace"),
                )
            except (paramiko.SSHException, OSError) as e:
                raise RemoteExecutionError(
                    f"Command failed on {host}: {command}: {e}", host=host
                ) from e

        logger.debug("Command on %s exited with %s", host, result.exit_status)
        return result

    def copy_file(self, host: str, user: str, password: str,
                  local_path: Path, remote_path: str) -> None:
        """Upload ``local_path`` over SFTP."""
        logger.info("Copying %s to %s:%s", local_path, host, remote_path)
        with closing(self._connect(host, user, password)) as client:
            try:
                with closing(client.open_sftp()) as sftp:
                    sftp.put(str(local_path), remote_path)
            except (paramiko.SSHException, OSError) as e:
                raise RemoteExecutionError(
                    f"Can't copy {local_path} to {host}:{remote_path}: {e}", host=host
                ) from e

    def fetch_file(self, host: str, user: str, password: str,
                   remote_path: str, local_path: Path) -> None:
        """Download ``remote_path`` over SFTP, creating local parents."""
        local_path = Path(local_path)
        local_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect(host, user, password)) as client:
            try:
                with closing(client.open_sftp()) as sftp:
                    sftp.get(remote_path, str(local_path))
            except (paramiko.SSHException, OSError) as e:
                raise RemoteExecutionError(
                    f"Can't fetch {host}:{remote_path}: {e}", host=host
                ) from e
