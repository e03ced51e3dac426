"""Domain primitives for node identification, diagnostics and fault rules."""

from dataclasses import dataclass
from typing import List, Optional

from .enums import NodeState


@dataclass(frozen=True)
class NodeContext:
    """Diagnostic snapshot combining node identity with runtime state.

    Created on-demand for logging and error reporting.
    """

    name: str
    endpoint: str
    state: NodeState
    partitioned: bool = False
    backend: Optional[str] = None

    def __str__(self) -> str:
        suffix = ",partitioned" if self.partitioned else ""
        return f"{self.name}[{self.state.value}{suffix}]"

    def is_running(self) -> bool:
        return self.state == NodeState.RUNNING

    def is_paused(self) -> bool:
        return self.state == NodeState.PAUSED


@dataclass(frozen=True)
class FaultRule:
    """One packet-filter rule applied inside a node to partition it.

    ``direction`` is ``-s`` (match source) on INPUT and ``-d`` (match
    destination) on OUTPUT.
    """

    chain: str
    direction: str
    address: str
    target: str

    def __post_init__(self) -> None:
        if self.chain not in ("INPUT", "OUTPUT"):
            raise ValueError(f"Unsupported iptables chain: {self.chain}")
        if self.direction not in ("-s", "-d"):
            raise ValueError(f"Unsupported address match: {self.direction}")
        if self.target not in ("ACCEPT", "DROP"):
            raise ValueError(f"Unsupported iptables target: {self.target}")

    def append_command(self) -> List[str]:
        """iptables command line appending this rule."""
        return ["iptables", "-A", self.chain, self.direction, self.address, "-j", self.target]

    def __str__(self) -> str:
        return " ".join(self.append_command()[1:])


def symmetric_partition_rules(subnet: str, gateway: str) -> List[FaultRule]:
    """Rules cutting a node off from ``subnet`` in both directions.

    The gateway stays reachable so the engine can still talk to the node.
    Order matters: ACCEPT rules must precede the DROP for the same chain.
    """
    return [
        FaultRule("INPUT", "-s", gateway, "ACCEPT"),
        FaultRule("INPUT", "-s", subnet, "DROP"),
        FaultRule("OUTPUT", "-d", gateway, "ACCEPT"),
        FaultRule("OUTPUT", "-d", subnet, "DROP"),
    ]


FLUSH_COMMANDS: List[List[str]] = [
    ["iptables", "-F", "INPUT"],
    ["iptables", "-F", "OUTPUT"],
]
