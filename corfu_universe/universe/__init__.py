"""Universe orchestration: clusters, VM provisioning and the universe factory."""

from .factory import UniverseFactory
from .universe import DockerUniverse, Universe, VmUniverse
from .vm_provisioner import VmProvisioner

__all__ = [
    "Universe",
    "DockerUniverse",
    "VmUniverse",
    "VmProvisioner",
    "UniverseFactory",
]
