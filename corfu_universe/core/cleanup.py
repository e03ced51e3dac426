"""Cleanup hooks run when the interpreter exits without an orderly teardown."""

import atexit
import threading
from typing import Callable, Dict, List, Optional

from .log import get_logger

logger = get_logger(__name__)


class CleanupRegistry:
    """Keyed cleanup callbacks executed once, in reverse registration order.

    The ``atexit`` hook is installed lazily on the first registration, so a
    registry that never holds a callback leaves interpreter shutdown alone.
    """

    def __init__(self, register_atexit: bool = True) -> None:
        self._callbacks: Dict[str, Callable[[], None]] = {}
        self._lock = threading.Lock()
        self._register_atexit = register_atexit
        self._atexit_installed = False

    def register(self, key: str, callback: Callable[[], None]) -> None:
        with self._lock:
            self._callbacks[key] = callback
            if self._register_atexit and not self._atexit_installed:
                atexit.register(self.run_all)
                self._atexit_installed = True

    def unregister(self, key: str) -> Optional[Callable[[], None]]:
        with self._lock:
            return self._callbacks.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._callbacks)

    def run_all(self) -> None:
        """Run and forget every pending callback, logging failures."""
        with self._lock:
            pending = list(self._callbacks.items())
            self._callbacks.clear()

        for key, callback in reversed(pending):
            try:
                callback()
            except Exception as e:
                logger.error("Cleanup of %s failed: %s", key, e)


_cleanup_registry = CleanupRegistry()


def get_cleanup_registry() -> CleanupRegistry:
    """Process-wide registry used by backends unless one is injected."""
    return _cleanup_registry
