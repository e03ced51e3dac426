"""Tests for universe orchestration."""

import threading
from unittest.mock import MagicMock, patch

import pytest
from docker.errors import APIError, NotFound

from corfu_universe.core.enums import NodeType, UniverseState
from corfu_universe.core.errors import ProvisioningError, UniverseError
from corfu_universe.core.types import ClusterParams, UniverseParams
from corfu_universe.testing.fixtures import cluster_params, vm_universe_params
from corfu_universe.universe.universe import DockerUniverse, Universe, VmUniverse


class FakeUniverse(Universe):
    """Universe whose clusters are plain mocks."""

    def __init__(self, params, config, bootstrap_client):
        super().__init__(params, config, bootstrap_client)
        self.created = {}

    def _create_cluster(self, cluster_params):
        cluster = self.created[cluster_params.name] = MagicMock()
        return cluster


@pytest.fixture
def two_cluster_params():
    return UniverseParams().add(ClusterParams(name="first")).add(ClusterParams(name="second"))


class TestLifecycle:
    def test_clusters_deployed_in_order(self, two_cluster_params, universe_config,
                                        mock_bootstrap_client):
        universe = FakeUniverse(two_cluster_params, universe_config, mock_bootstrap_client)

        universe.deploy()

        assert universe.state == UniverseState.BOOTSTRAPPED
        assert list(universe.groups()) == ["first", "second"]
        assert all(c.deploy.call_count == 1 for c in universe.created.values())

    def test_redeploy_rejected(self, two_cluster_params, universe_config, mock_bootstrap_client):
        universe = FakeUniverse(two_cluster_params, universe_config, mock_bootstrap_client).deploy()

        with pytest.raises(UniverseError):
            universe.deploy()

    def test_shutdown_continues_after_cluster_failure(self, two_cluster_params, universe_config,
                                                       mock_bootstrap_client):
        universe = FakeUniverse(two_cluster_params, universe_config, mock_bootstrap_client).deploy()
        universe.created["first"].stop.side_effect = RuntimeError("engine gone")

        universe.shutdown()

        universe.created["second"].stop.assert_called_once_with(10.0)
        assert universe.state == UniverseState.SHUT_DOWN

    def test_shutdown_is_idempotent(self, two_cluster_params, universe_config,
                                    mock_bootstrap_client):
        universe = FakeUniverse(two_cluster_params, universe_config, mock_bootstrap_client).deploy()

        universe.shutdown()
        universe.shutdown()

        assert universe.created["first"].stop.call_count == 1

    def test_failed_cluster_still_reached_by_shutdown(self, two_cluster_params, universe_config,
                                                      mock_bootstrap_client):
        universe = FakeUniverse(two_cluster_params, universe_config, mock_bootstrap_client)

        def fail_first(cluster_params):
            cluster = MagicMock()
            cluster.deploy.side_effect = UniverseError("boom")
            universe.created[cluster_params.name] = cluster
            return cluster

        universe._create_cluster = fail_first
        with pytest.raises(UniverseError):
            universe.deploy()

        universe.shutdown()
        universe.created["first"].stop.assert_called_once()

    def test_unsupported_node_type(self, universe_config, mock_bootstrap_client):
        params = UniverseParams().add(ClusterParams(name="clients", node_type=NodeType.CORFU_CLIENT))

        with pytest.raises(UniverseError):
            FakeUniverse(params, universe_config, mock_bootstrap_client).deploy()

    def test_reads_do_not_wait_for_shutdown(self, two_cluster_params, universe_config,
                                            mock_bootstrap_client):
        universe = FakeUniverse(two_cluster_params, universe_config, mock_bootstrap_client).deploy()
        stopping = threading.Event()
        release = threading.Event()

        def slow_stop(timeout):
            stopping.set()
            release.wait(5)

        universe.created["first"].stop.side_effect = slow_stop
        shutdown = threading.Thread(target=universe.shutdown)
        shutdown.start()
        assert stopping.wait(5)

        snapshot = {}
        reader = threading.Thread(target=lambda: snapshot.update(universe.groups()))
        reader.start()
        reader.join(1)
        blocked = reader.is_alive()
        release.set()
        shutdown.join(5)

        assert not blocked
        assert list(snapshot) == ["first", "second"]
        assert universe.state == UniverseState.SHUT_DOWN

    def test_base_class_is_abstract(self, two_cluster_params, universe_config,
                                    mock_bootstrap_client):
        with pytest.raises(TypeError):
            Universe(two_cluster_params, universe_config, mock_bootstrap_client)

    def test_context_manager_shuts_down(self, two_cluster_params, universe_config,
                                        mock_bootstrap_client):
        with FakeUniverse(two_cluster_params, universe_config, mock_bootstrap_client) as universe:
            universe.deploy()

        assert universe.state == UniverseState.SHUT_DOWN


class TestDockerUniverse:
    def make_universe(self, mock_docker_client, universe_config, mock_bootstrap_client,
                      cleanup_registry, make_node_params):
        params = UniverseParams(network_name="CorfuNetTest").add(
            cluster_params(nodes=[make_node_params(9000), make_node_params(9001)])
        )
        return DockerUniverse(params, universe_config, mock_bootstrap_client, mock_docker_client,
                              cleanup_registry=cleanup_registry)

    def test_creates_and_removes_network(self, mock_docker_client, universe_config,
                                         mock_bootstrap_client, cleanup_registry, make_node_params):
        created = mock_docker_client.networks.create.return_value

        def get_network(name):
            if name == "CorfuNetTest" and not mock_docker_client.networks.create.called:
                raise NotFound("missing")
            return created

        mock_docker_client.networks.get.side_effect = get_network
        universe = self.make_universe(mock_docker_client, universe_config, mock_bootstrap_client,
                                      cleanup_registry, make_node_params)

        universe.deploy()

        mock_docker_client.networks.create.assert_called_once_with("CorfuNetTest", driver="bridge")
        assert mock_docker_client.containers.create.call_count == 2
        mock_bootstrap_client.bootstrap.assert_called_once()

        universe.shutdown()

        created.remove.assert_called_once()

    def test_existing_network_is_kept(self, mock_docker_client, universe_config,
                                      mock_bootstrap_client, cleanup_registry, make_node_params):
        universe = self.make_universe(mock_docker_client, universe_config, mock_bootstrap_client,
                                      cleanup_registry, make_node_params)

        universe.deploy()
        universe.shutdown()

        mock_docker_client.networks.create.assert_not_called()
        mock_docker_client.networks.get.return_value.remove.assert_not_called()

    def test_network_creation_failure(self, mock_docker_client, universe_config,
                                      mock_bootstrap_client, cleanup_registry, make_node_params):
        mock_docker_client.networks.get.side_effect = NotFound("missing")
        mock_docker_client.networks.create.side_effect = APIError("pool overlaps")
        universe = self.make_universe(mock_docker_client, universe_config, mock_bootstrap_client,
                                      cleanup_registry, make_node_params)

        with pytest.raises(UniverseError):
            universe.deploy()

    def test_cleanup_on_exit_disabled_uses_private_registry(self, mock_docker_client, universe_config,
                                                            mock_bootstrap_client):
        params = UniverseParams(cleanup_on_exit=False)
        with patch("corfu_universe.core.cleanup.atexit.register") as mock_register:
            universe = DockerUniverse(params, universe_config, mock_bootstrap_client, mock_docker_client)
            universe._cleanup_registry.register("container:node9000", lambda: None)

        mock_register.assert_not_called()


class TestVmUniverse:
    def test_provisions_before_deploying(self, universe_config, mock_bootstrap_client):
        params = vm_universe_params("https://vc", "admin", "pw", "template", "corfu", "corfu",
                                    num_nodes=2)
        provisioner = MagicMock()
        calls = []
        provisioner.provision_all.side_effect = lambda: calls.append("provision")
        universe = VmUniverse(params, universe_config, mock_bootstrap_client,
                              provisioner=provisioner, remote=MagicMock())
        universe._create_cluster = lambda p: calls.append(("cluster", p.name)) or MagicMock()

        universe.deploy()

        assert calls == ["provision", ("cluster", "corfuCluster")]
        assert params.vm_names() == ["corfu-vm-1", "corfu-vm-2"]

    def test_provisioning_failure_stops_deploy(self, universe_config, mock_bootstrap_client):
        params = vm_universe_params("https://vc", "admin", "pw", "template", "corfu", "corfu")
        provisioner = MagicMock()
        provisioner.provision_all.side_effect = ProvisioningError("no ip", vm_name="corfu-vm-1")
        universe = VmUniverse(params, universe_config, mock_bootstrap_client,
                              provisioner=provisioner, remote=MagicMock())

        with pytest.raises(ProvisioningError):
            universe.deploy()
        assert universe.state == UniverseState.PROVISIONING
        assert universe.groups() == {}
