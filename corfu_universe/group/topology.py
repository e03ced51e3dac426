"""Initial cluster layout submitted at bootstrap."""

import uuid
from typing import List, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..core.enums import ReplicationMode
from ..core.errors import TopologyError
from ..core.log import Logger


class _LayoutModel(BaseModel):
    """Immutable model serialized with the service's camelCase field names."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class LayoutStripe(_LayoutModel):
    log_servers: List[str]


class LayoutSegment(_LayoutModel):
    """Address range ``[start, end)`` replicated across its stripes; end -1 is open."""

    replication_mode: ReplicationMode = ReplicationMode.CHAIN_REPLICATION
    start: int = 0
    end: int = -1
    stripes: List[LayoutStripe]


class Layout(_LayoutModel):
    """Versioned cluster topology: epoch, cluster id, members and segments."""

    layout_servers: List[str]
    sequencers: List[str]
    segments: List[LayoutSegment]
    unresponsive_servers: List[str] = Field(default_factory=list)
    epoch: int = 0
    cluster_id: str

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str) -> "Layout":
        return cls.model_validate_json(data)


class TopologyBuilder:
    """Builds the initial layout of a freshly deployed cluster.

    Every member is a layout server, a sequencer and a log server of the
    single chain-replication stripe.
    """

    def __init__(self, logger: Logger) -> None:
        self._logger = logger

    def build(self, endpoints: Sequence[str]) -> Layout:
        """Build an epoch-0 layout spanning ``endpoints``.

        Raises:
            TopologyError: If ``endpoints`` is empty or contains duplicates
        """
        servers = list(endpoints)
        if not servers:
            raise TopologyError("Can't build a layout without servers")
        if len(set(servers)) != len(servers):
            raise TopologyError(f"Duplicate servers in layout: {servers}")

        layout = Layout(
            layout_servers=servers,
            sequencers=servers,
            segments=[LayoutSegment(stripes=[LayoutStripe(log_servers=servers)])],
            cluster_id=str(uuid.uuid4()),
        )
        self._logger.debug("Built layout for %s: %s", servers, layout.to_json())
        return layout
