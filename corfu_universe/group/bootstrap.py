"""Cluster bootstrap through the service's bootstrap command."""

import time
from pathlib import Path
from typing import Callable, List, Optional

from ..core.errors import BootstrapError, ProcessError
from ..core.log import Logger
from ..core.process import ProcessExecutor
from ..utils.filesystem import atomic_write
from .topology import Layout


class CommandBootstrapClient:
    """Bootstraps a cluster by running the service's bootstrap tool on a layout file.

    The layout is written atomically as JSON into ``work_dir`` and passed to
    ``<bootstrap_command> -l <layout file>``. Each attempt is bounded by
    ``retry_timeout``, and attempts are ``retry_timeout`` apart.
    """

    def __init__(self,
                 logger: Logger,
                 bootstrap_command: List[str],
                 work_dir: Path,
                 executor: Optional[ProcessExecutor] = None,
                 sleep: Callable[[float], None] = time.sleep) -> None:
        self._logger = logger
        self._bootstrap_command = list(bootstrap_command)
        self._work_dir = Path(work_dir)
        self._executor = executor or ProcessExecutor()
        self._sleep = sleep

    def bootstrap(self, layout: Layout, retries: int, retry_timeout: float) -> None:
        """Submit ``layout`` to the cluster.

        Args:
            layout: Initial layout of the cluster
            retries: Maximum number of attempts
            retry_timeout: Per-attempt deadline and pause between attempts (seconds)

        Raises:
            BootstrapError: If every attempt failed
        """
        layout_file = self._work_dir / f"layout-{layout.cluster_id}.json"
        atomic_write(layout_file, layout.to_json())
        command = self._bootstrap_command + ["-l", str(layout_file)]

        last_error = ""
        for attempt in range(1, retries + 1):
            self._logger.info("Bootstrapping cluster %s, attempt %d/%d",
                              layout.cluster_id, attempt, retries)
            try:
                result = self._executor.run(command, timeout=retry_timeout)
                if result.ok:
                    self._logger.info("Cluster %s bootstrapped with %s",
                                      layout.cluster_id, layout.layout_servers)
                    return
                last_error = result.stderr.strip() or f"exit code {result.returncode}"
            except ProcessError as e:
                last_error = str(e)

            self._logger.warning("Bootstrap attempt %d failed: %s", attempt, last_error)
            if attempt < retries:
                self._sleep(retry_timeout)

        raise BootstrapError(
            f"Failed to bootstrap cluster after {retries} attempts: {last_error}",
            attempts=retries,
            details={"layout_servers": layout.layout_servers, "layout_file": str(layout_file)},
        )
