"""Core framework components."""

from .value_objects import NodeContext, FaultRule

__all__ = ["NodeContext", "FaultRule"]
