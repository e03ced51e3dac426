"""Error hierarchy for the Corfu Universe framework."""

from typing import Optional, Dict, Any


class UniverseFrameworkError(Exception):
    """Base exception for all Corfu Universe framework errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Configuration Errors
class ConfigurationError(UniverseFrameworkError):
    """Error in framework or universe configuration."""


# Node Errors
class NodeError(UniverseFrameworkError):
    """Base class for node lifecycle errors."""

    def __init__(self, message: str, node_name: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.node_name = node_name


class NodeDeploymentError(NodeError):
    """The physical resource backing a node could not be created or started."""


class PartitionError(NodeError):
    """Applying or removing a network partition failed."""


class UnsupportedOperationError(NodeError):
    """The backend does not support the requested lifecycle operation."""


# Cluster Errors
class ClusterError(UniverseFrameworkError):
    """Cluster operation error."""


class TopologyError(ClusterError):
    """The initial cluster layout could not be built."""


class BootstrapError(ClusterError):
    """Cluster bootstrap failed after exhausting its retry budget."""

    def __init__(self, message: str, attempts: int,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.attempts = attempts


# Universe Errors
class UniverseError(UniverseFrameworkError):
    """Universe operation error."""


class ProvisioningError(UniverseError):
    """Virtual machine provisioning failed."""

    def __init__(self, message: str, vm_name: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.vm_name = vm_name


# Process and Remote Execution Errors
class ProcessError(UniverseFrameworkError):
    """Base class for local process errors."""


class ProcessTimeoutError(ProcessError):
    """Process operation timed out."""

    def __init__(self, message: str, timeout: float, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.timeout = timeout


class RemoteExecutionError(UniverseFrameworkError):
    """Command execution or file transfer on a remote host failed."""

    def __init__(self, message: str, host: Optional[str] = None,
                 exit_status: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.host = host
        self.exit_status = exit_status


# Filesystem and IO Errors
class FilesystemError(UniverseFrameworkError):
    """Filesystem operation error."""


class AtomicWriteError(FilesystemError):
    """Atomic write operation failed."""
