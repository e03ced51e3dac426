"""Utility modules for the Corfu Universe framework."""

from .filesystem import append_bytes, atomic_write, ensure_dir

__all__ = ["append_bytes", "atomic_write", "ensure_dir"]
