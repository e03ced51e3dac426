"""One-shot local command execution with timeout enforcement."""

import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .errors import ProcessError, ProcessTimeoutError
from .log import get_logger, log_event

logger = get_logger(__name__)


@dataclass
class ProcessResult:
    """Result of process execution."""

    returncode: int
    stdout: str
    stderr: str
    duration: float

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessExecutor:
    """Executes one-shot commands with timeout enforcement."""

    def run(
        self,
        command: List[str],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        """Execute a command, killing it if it outlives ``timeout`` seconds."""
        start_time = time.time()
        log_event(logger, "process", f"Executing: {' '.join(command)}",
                  command=command, timeout=timeout)
        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except (OSError, ValueError) as e:
            raise ProcessError(f"Failed to execute command {command[0]}: {e}") from e

        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            process.kill()
            process.communicate()
            duration = time.time() - start_time
            log_event(logger, "process", f"Command {command[0]} timed out", duration=duration)
            raise ProcessTimeoutError(
                f"Command {command[0]} timed out after {timeout}s",
                timeout=timeout,
                details={"command": command, "duration": duration},
            ) from e

        duration = time.time() - start_time
        result = ProcessResult(
            returncode=process.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
            duration=duration,
        )
        if not result.ok:
            logger.warning("Command %s exited with %s: %s",
                           command[0], result.returncode, result.stderr.strip())
        return result
