"""Protocol definitions for framework interfaces.

Protocols define the "what" (interfaces) without depending on "how"
(implementations). Node backends, the bootstrap API and the service's
administrative client are all consumed through these boundaries.
"""

from typing import Any, Dict, List, Protocol

from .value_objects import FaultRule


class NodeBackend(Protocol):
    """Capability interface every node backend implements.

    Backends perform the physical operation and report nothing about the
    idempotency rules; ``Node`` decides when an operation is a no-op using
    the ``is_running``/``is_paused`` probes.
    """

    def deploy(self) -> None:
        """Allocate the physical resource and start the server."""

    def stop(self, timeout: float) -> None:
        """Request graceful shutdown within ``timeout`` seconds."""

    def kill(self) -> None:
        """Terminate immediately."""

    def pause(self) -> None:
        """Suspend the server process."""

    def resume(self) -> None:
        """Continue a suspended server process."""

    def disconnect(self) -> None:
        """Apply a symmetric network partition."""

    def reconnect(self) -> None:
        """Flush all partition rules."""

    def restart(self) -> None:
        """Start a stopped or killed server in place."""

    def destroy(self) -> None:
        """Irreversibly remove the physical resource."""

    def collect_logs(self) -> None:
        """Copy the server output into the node's log directory."""

    def active_fault_rules(self) -> List[FaultRule]:
        """Packet-filter rules currently applied by ``disconnect``."""

    def is_running(self) -> bool:
        """Whether the server process is alive and not suspended."""

    def is_paused(self) -> bool:
        """Whether the server process is suspended."""


class BootstrapClient(Protocol):
    """Boundary to the target service's one-shot bootstrap API."""

    def bootstrap(self, layout: Any, retries: int, retry_timeout: float) -> None:
        """Submit ``layout``; raise BootstrapError once ``retries`` are exhausted."""


class AdminClient(Protocol):
    """Administrative client of the target service, used by test scenarios.

    The harness never calls it; scenarios drive membership changes through
    it after the initial bootstrap.
    """

    def add_node(self, endpoint: str, retries: int, timeout: float, poll_period: float) -> None:
        """Add ``endpoint`` to the cluster."""

    def remove_node(self, endpoint: str, retries: int, timeout: float, poll_period: float) -> None:
        """Remove ``endpoint`` from the cluster."""

    def force_remove_node(self, endpoint: str, retries: int, timeout: float,
                          poll_period: float) -> None:
        """Remove ``endpoint`` without waiting for it to acknowledge."""

    def get_cluster_status(self) -> Dict[str, Any]:
        """Cluster status with per-node connectivity."""

    def get_layout(self) -> Any:
        """Current layout as seen by the service."""
