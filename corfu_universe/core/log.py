"""Structured logging with JSON file output and rich terminal formatting."""

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from .log_formatters import LogContext, StructuredFormatter, UniverseRichHandler, _log_context
from .value_objects import NodeContext


class Logger(Protocol):
    """Protocol for logger instances to enable dependency injection."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log error message."""

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log exception with traceback."""


class IsolatedLogManager:
    """Non-singleton log manager whose loggers never propagate to root."""

    def __init__(self, namespace: str = "") -> None:
        self._namespace = namespace
        self._configured = False
        self._json_handler: Optional[logging.Handler] = None
        self._console_handler: Optional[logging.Handler] = None
        self._loggers: Dict[str, logging.Logger] = {}
        self._context = LogContext()
        self._lock = threading.RLock()

    @property
    def configured(self) -> bool:
        return self._configured

    def configure(self,
                  level: Union[int, str] = logging.INFO,
                  log_file: Optional[Path] = None,
                  enable_json: bool = True,
                  enable_console: bool = True,
                  console_level: Optional[Union[int, str]] = None) -> None:
        with self._lock:
            # Allow reconfiguration for test isolation
            if self._configured:
                self._clear_configuration()

            if enable_json and log_file:
                log_file = Path(log_file)
                log_file.parent.mkdir(parents=True, exist_ok=True)
                self._json_handler = logging.FileHandler(log_file)
                self._json_handler.setFormatter(StructuredFormatter(include_context=True))
                self._json_handler.setLevel(level)

            if enable_console:
                self._console_handler = UniverseRichHandler(
                    show_time=True, show_path=False, markup=True
                )
                self._console_handler.setLevel(console_level or level)

            for logger in self._loggers.values():
                self._attach_handlers(logger)

            self._configured = True

    def add_file_handler(self, handler: logging.Handler) -> None:
        """Attach an extra handler to existing and future loggers."""
        with self._lock:
            self._json_handler = handler
            for logger in self._loggers.values():
                logger.addHandler(handler)

    def create_logger(self, name: str) -> logging.Logger:
        with self._lock:
            full_name = self._qualify(name)
            if full_name in self._loggers:
                return self._loggers[full_name]

            logger = logging.getLogger(full_name)
            logger.propagate = False
            logger.setLevel(logging.DEBUG)
            self._attach_handlers(logger)

            self._loggers[full_name] = logger
            return logger

    def _qualify(self, name: str) -> str:
        # Module names from get_logger(__name__) already carry the package prefix
        if not self._namespace or name == self._namespace or name.startswith(f"{self._namespace}."):
            return name
        return f"{self._namespace}.{name}"

    def _attach_handlers(self, logger: logging.Logger) -> None:
        for handler in (self._json_handler, self._console_handler):
            if handler and handler not in logger.handlers:
                logger.addHandler(handler)

    def shutdown(self) -> None:
        with self._lock:
            self._clear_configuration()
            self._loggers.clear()
            self._context.clear_context()

    def _clear_configuration(self) -> None:
        for logger in self._loggers.values():
            for handler in logger.handlers[:]:
                logger.removeHandler(handler)

        for handler in (self._json_handler, self._console_handler):
            if handler:
                try:
                    handler.close()
                except (OSError, RuntimeError):
                    pass  # Ignore handler close errors
        self._json_handler = None
        self._console_handler = None
        self._configured = False


class LogManager:
    """Process-wide logging configuration on top of an isolated manager."""

    def __init__(self) -> None:
        self._manager = IsolatedLogManager("corfu_universe")

    def configure(self,
                  level: Union[int, str] = logging.INFO,
                  log_file: Optional[Path] = None,
                  enable_json: bool = True,
                  enable_console: bool = True,
                  console_level: Optional[Union[int, str]] = None) -> None:
        if self._manager.configured:
            return
        self._manager.configure(
            level=level,
            log_file=log_file,
            enable_json=enable_json,
            enable_console=enable_console,
            console_level=console_level,
        )

    def get_logger(self, name: str) -> logging.Logger:
        return self._manager.create_logger(name)

    def add_file_logging(self, log_file: Path, level: Union[int, str] = logging.DEBUG) -> None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter(include_context=True))
        file_handler.setLevel(level)
        self._manager.add_file_handler(file_handler)

    def shutdown(self) -> None:
        self._manager.shutdown()

    def reset_configuration(self) -> None:
        """Allow a different configuration, e.g. between tests."""
        self._manager.shutdown()
        self._manager = IsolatedLogManager("corfu_universe")


# Global log manager instance
_log_manager = LogManager()


def configure_logging(**kwargs: Any) -> None:
    """Configure the global logging system."""
    _log_manager.configure(**kwargs)


def add_file_logging(log_file: Path, level: Union[int, str] = logging.DEBUG) -> None:
    """Add JSON file logging to an already-configured logging system."""
    _log_manager.add_file_logging(log_file, level)


def get_logger(name: str) -> logging.Logger:
    return _log_manager.get_logger(name)


def shutdown_logging() -> None:
    _log_manager.shutdown()


def reset_logging() -> None:
    _log_manager.reset_configuration()


def log_event(logger: Logger, event_type: str, message: str, **kwargs: Any) -> None:
    """Log a structured event with context."""
    logger.info(message, extra={"event_type": event_type, **kwargs})


def log_node_event(
    logger: Logger,
    event: str,
    node: Union[str, NodeContext, None] = None,
    **kwargs: Any,
) -> None:
    """Log a node lifecycle event.

    Accepts either a node name or a NodeContext for enriched logging with
    state and partition information.
    """
    extra: Dict[str, Any] = {"event_type": "node", "node_event": event}

    if isinstance(node, NodeContext):
        extra["node_name"] = node.name
        extra["endpoint"] = node.endpoint
        extra["state"] = node.state.value
        extra["partitioned"] = node.partitioned
        if node.backend:
            extra["backend"] = node.backend
        display = str(node)
    elif node is not None:
        extra["node_name"] = node
        display = node
    else:
        display = None

    extra.update(kwargs)
    logger.info("Node %s %s", display, event, extra=extra)


def log_cluster_event(
    logger: Logger, event: str, cluster_name: Optional[str] = None, **kwargs: Any
) -> None:
    """Log a cluster-related event."""
    extra: Dict[str, Any] = {"event_type": "cluster", "cluster_event": event}
    if cluster_name is not None:
        extra["cluster_name"] = cluster_name
    extra.update(kwargs)
    logger.info("Cluster %s %s", cluster_name, event, extra=extra)


def set_log_context(**kwargs: Any) -> None:
    _log_context.set_context(**kwargs)


def get_log_context() -> Dict[str, Any]:
    return _log_context.get_context()


def clear_log_context() -> None:
    _log_context.clear_context()


def log_context(**kwargs: Any) -> Any:
    """Context manager for temporary logging context."""
    return _log_context.context(**kwargs)
