"""Configuration management with environment variable integration and validation."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from .errors import ConfigurationError
from .types import (
    ClusterParams,
    NodeParams,
    UniverseConfig,
    UniverseParams,
    VmNodeParams,
    VmUniverseParams,
)

ENV_PREFIX = "CORFU_UNIVERSE_"


def load_env_overrides(prefix: str = ENV_PREFIX) -> Dict[str, Any]:
    """Load environment variables with the given prefix and convert to appropriate types."""
    overrides: Dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        field_name = key[len(prefix):].lower()

        # Nested configuration, e.g. CORFU_UNIVERSE_TIMEOUTS__NODE_STOP
        if "__" in field_name:
            parts = field_name.split("__")
            if len(parts) == 2:
                section, sub_field = parts
                overrides.setdefault(section, {})[sub_field] = _convert_env_value(value)
            continue

        overrides[field_name] = _convert_env_value(value)

    return overrides


def _convert_env_value(value: str) -> Any:
    """Convert string environment value to appropriate Python type."""
    if not value:
        return None

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    if "," in value:
        return [item.strip() for item in value.split(",")]

    return value


def _load_yaml(path: Path) -> Dict[str, Any]:
    if path.suffix.lower() not in (".yml", ".yaml"):
        raise ConfigurationError(f"Unsupported config file format: {path.suffix}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


class ConfigManager:
    """Central configuration management."""

    def __init__(self) -> None:
        self._config: Optional[UniverseConfig] = None

    def load_config(self, config_file: Optional[Path] = None, **overrides: Any) -> UniverseConfig:
        """Load configuration from file and environment with CLI overrides.

        Precedence: CLI overrides, then environment, then the file, then
        model defaults.
        """
        config_data: Dict[str, Any] = {}

        if config_file and Path(config_file).exists():
            config_data.update(_load_yaml(Path(config_file)))

        config_data.update(load_env_overrides())
        config_data.update({k: v for k, v in overrides.items() if v is not None})

        try:
            self._config = UniverseConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        return self._config

    def get_config(self) -> UniverseConfig:
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def reset(self) -> None:
        self._config = None


# Global config manager instance
_config_manager = ConfigManager()


def load_config(**kwargs: Any) -> UniverseConfig:
    """Load global configuration."""
    return _config_manager.load_config(**kwargs)


def get_config() -> UniverseConfig:
    """Get current global configuration."""
    return _config_manager.get_config()


def reset_config() -> None:
    _config_manager.reset()


def _build_clusters(raw_clusters: List[Dict[str, Any]], vm_backend: bool) -> List[ClusterParams]:
    clusters = []
    for raw in raw_clusters:
        raw = dict(raw)
        node_cls = VmNodeParams if vm_backend else NodeParams
        nodes = [node_cls(**node) for node in raw.pop("nodes", [])]
        cluster = ClusterParams(**raw)
        for node in nodes:
            cluster.add(node)
        clusters.append(cluster)
    return clusters


def load_universe_params(path: Union[str, Path]) -> UniverseParams:
    """Read a YAML universe description.

    A ``vsphere`` section selects the VM backend; its nodes then need a
    ``vm_name`` each.

    Example::

        network_name: CorfuNet
        clusters:
          - name: corfu
            nodes:
              - port: 9000
              - port: 9001
    """
    data = _load_yaml(Path(path))
    vsphere = data.pop("vsphere", None)
    raw_clusters = data.pop("clusters", []) or []

    try:
        clusters = _build_clusters(raw_clusters, vm_backend=vsphere is not None)
        if vsphere is not None:
            params: UniverseParams = VmUniverseParams(**data, **vsphere)
            for cluster in clusters:
                for node in cluster.nodes_params():
                    params.register_vm(node.vm_name)
        else:
            params = UniverseParams(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid universe description {path}: {e}") from e

    for cluster in clusters:
        params.add(cluster)
    return params
