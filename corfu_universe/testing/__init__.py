"""Fixture builders for scenario tests."""

from .fixtures import (
    FixtureConst,
    client_params,
    cluster_params,
    multiple_servers_params,
    single_server_params,
    universe_params,
    vm_universe_params,
)

__all__ = [
    "FixtureConst",
    "client_params",
    "cluster_params",
    "multiple_servers_params",
    "single_server_params",
    "universe_params",
    "vm_universe_params",
]
