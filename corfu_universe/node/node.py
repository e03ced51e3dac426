"""Corfu server node: parameters composed with one lifecycle backend."""

import threading
from typing import List, Optional

from ..core.enums import NodeState
from ..core.errors import NodeError
from ..core.log import get_logger, log_node_event
from ..core.protocols import NodeBackend
from ..core.types import NodeParams
from ..core.value_objects import FaultRule, NodeContext

logger = get_logger(__name__)


class Node:
    """A deployed (or deployable) Corfu server.

    The backend performs the physical work; this class owns the idempotency
    rules and the last known state. Network partitioning is tracked as a
    separate flag since a running node can be partitioned at the same time.
    """

    def __init__(self, params: NodeParams, backend: NodeBackend,
                 backend_name: Optional[str] = None) -> None:
        self._params = params
        self._backend = backend
        self._backend_name = backend_name
        self._state = NodeState.UNDEPLOYED
        self._partitioned = False
        self._lock = threading.RLock()

    @property
    def params(self) -> NodeParams:
        return self._params

    @property
    def name(self) -> str:
        return self._params.name

    @property
    def endpoint(self) -> str:
        return self._params.endpoint

    @property
    def state(self) -> NodeState:
        return self._state

    @property
    def partitioned(self) -> bool:
        return self._partitioned

    @property
    def backend(self) -> NodeBackend:
        return self._backend

    def context(self) -> NodeContext:
        return NodeContext(
            name=self.name,
            endpoint=self.endpoint,
            state=self._state,
            partitioned=self._partitioned,
            backend=self._backend_name,
        )

    def deploy(self) -> "Node":
        """Create the physical resource and start the server."""
        with self._lock:
            self._check_not_destroyed("deploy")
            if self._state != NodeState.UNDEPLOYED:
                raise NodeError(f"Node {self.name} is already deployed", node_name=self.name)
            log_node_event(logger, "deploying", self.context())
            self._backend.deploy()
            self._state = NodeState.RUNNING
            log_node_event(logger, "deployed", self.context())
            return self

    def stop(self, timeout: float) -> None:
        """Gracefully stop the server; a stopped node is left alone."""
        with self._lock:
            self._check_not_destroyed("stop")
            if not self._is_alive():
                log_node_event(logger, "already stopped", self.context())
                return
            self._backend.stop(timeout)
            self._state = NodeState.STOPPED
            log_node_event(logger, "stopped", self.context(), timeout=timeout)

    def kill(self) -> None:
        with self._lock:
            self._check_not_destroyed("kill")
            if not self._is_alive():
                log_node_event(logger, "kill skipped, not running", self.context())
                return
            self._backend.kill()
            self._state = NodeState.STOPPED
            log_node_event(logger, "killed", self.context())

    def pause(self) -> None:
        with self._lock:
            self._check_not_destroyed("pause")
            if not self._backend.is_running():
                log_node_event(logger, "pause skipped, not running", self.context())
                return
            self._backend.pause()
            self._state = NodeState.PAUSED
            log_node_event(logger, "paused", self.context())

    def resume(self) -> None:
        with self._lock:
            self._check_not_destroyed("resume")
            if not self._backend.is_paused():
                log_node_event(logger, "resume skipped, not paused", self.context())
                return
            self._backend.resume()
            self._state = NodeState.RUNNING
            log_node_event(logger, "resumed", self.context())

    def disconnect(self) -> None:
        """Symmetrically partition the node from the rest of its network."""
        with self._lock:
            self._check_not_destroyed("disconnect")
            if self._partitioned:
                log_node_event(logger, "already partitioned", self.context())
                return
            self._backend.disconnect()
            self._partitioned = True
            log_node_event(logger, "disconnected", self.context(),
                           rules=[str(rule) for rule in self._backend.active_fault_rules()])

    def reconnect(self) -> None:
        """Remove the partition. Safe to call when none is active."""
        with self._lock:
            self._check_not_destroyed("reconnect")
            self._backend.reconnect()
            self._partitioned = False
            log_node_event(logger, "reconnected", self.context())

    def restart(self) -> None:
        """Start a stopped or killed server in place."""
        with self._lock:
            self._check_not_destroyed("restart")
            if self._is_alive():
                logger.warning("Node %s is running or paused, stop it before restarting", self.name)
                return
            self._backend.restart()
            self._state = NodeState.RUNNING
            log_node_event(logger, "restarted", self.context())

    def destroy(self) -> None:
        """Kill, collect logs and irreversibly remove the node.

        The kill is attempted even when the server already looks dead. A
        failing kill or log collection does not prevent removal.
        """
        with self._lock:
            self._check_not_destroyed("destroy")
            try:
                self._backend.kill()
            except Exception as e:
                logger.warning("Kill before destroy failed for %s: %s", self.name, e)

            try:
                self._backend.collect_logs()
            except Exception as e:
                logger.warning("Log collection before destroy failed for %s: %s", self.name, e)
            self._backend.destroy()
            self._state = NodeState.DESTROYED
            self._partitioned = False
            log_node_event(logger, "destroyed", self.context())

    def collect_logs(self) -> None:
        with self._lock:
            self._check_not_destroyed("collect_logs")
            self._backend.collect_logs()

    def active_fault_rules(self) -> List[FaultRule]:
        """Partition rules currently applied to this node."""
        return list(self._backend.active_fault_rules())

    def _is_alive(self) -> bool:
        return self._backend.is_running() or self._backend.is_paused()

    def _check_not_destroyed(self, operation: str) -> None:
        if self._state == NodeState.DESTROYED:
            raise NodeError(
                f"Cannot {operation} node {self.name}: it has been destroyed",
                node_name=self.name,
            )

    def __repr__(self) -> str:
        return f"Node({self.context()})"
