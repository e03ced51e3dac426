"""Tests for vSphere provisioning with a mocked service instance."""

from unittest.mock import MagicMock, patch

import pytest
from pyVmomi import vmodl

from corfu_universe.core.errors import ProvisioningError
from corfu_universe.core.types import TimeoutConfig
from corfu_universe.testing.fixtures import vm_universe_params
from corfu_universe.universe.vm_provisioner import VmProvisioner, build_clone_spec


def make_vm(name, ip_address=None):
    vm = MagicMock()
    vm.name = name
    vm.guest.ipAddress = ip_address
    return vm


def make_view(*vms):
    view = MagicMock()
    view.view = list(vms)
    return view


@pytest.fixture
def params():
    return vm_universe_params("https://vc.example.com:8443/sdk", "admin", "secret",
                              "corfu-template", "corfu", "corfu", num_nodes=1)


@pytest.fixture
def service_instance():
    return MagicMock()


@pytest.fixture
def provisioner(params, service_instance):
    connect = MagicMock(return_value=service_instance)
    sleep = MagicMock()
    timeouts = TimeoutConfig(ip_poll_max_attempts=3, ip_poll_interval=0.5)
    with patch("corfu_universe.universe.vm_provisioner.Disconnect") as disconnect, \
            patch("corfu_universe.universe.vm_provisioner.WaitForTask") as wait_for_task:
        yield ProvisionerHarness(VmProvisioner(params, timeouts=timeouts, connect=connect, sleep=sleep),
                                connect, sleep, disconnect, wait_for_task)


class ProvisionerHarness:
    def __init__(self, provisioner, connect, sleep, disconnect, wait_for_task):
        self.provisioner = provisioner
        self.connect = connect
        self.sleep = sleep
        self.disconnect = disconnect
        self.wait_for_task = wait_for_task


def view_manager(service_instance):
    return service_instance.RetrieveContent.return_value.viewManager


def test_existing_vm_reused(provisioner, service_instance, params):
    view_manager(service_instance).CreateContainerView.return_value = make_view(
        make_vm("corfu-vm-1", "10.0.0.21")
    )

    addresses = provisioner.provisioner.provision_all()

    assert addresses == {"corfu-vm-1": "10.0.0.21"}
    assert params.get_ip_address("corfu-vm-1") == "10.0.0.21"
    provisioner.connect.assert_called_once_with(
        host="vc.example.com", port=8443, user="admin", pwd="secret",
        disableSslCertValidation=True,
    )
    provisioner.disconnect.assert_called_once_with(service_instance)
    provisioner.wait_for_task.assert_not_called()


def test_missing_vm_cloned_from_template(provisioner, service_instance):
    template = make_vm("corfu-template")
    clone = make_vm("corfu-vm-1", "10.0.0.22")
    view_manager(service_instance).CreateContainerView.side_effect = [
        make_view(template),
        make_view(template),
        make_view(template, clone),
    ]

    ip_address = provisioner.provisioner.provision("corfu-vm-1")

    assert ip_address == "10.0.0.22"
    _, kwargs = template.Clone.call_args
    assert kwargs["name"] == "corfu-vm-1"
    assert kwargs["folder"] is template.parent
    provisioner.wait_for_task.assert_called_once_with(template.Clone.return_value)


def test_missing_template(provisioner, service_instance):
    view_manager(service_instance).CreateContainerView.return_value = make_view()

    with pytest.raises(ProvisioningError) as exc_info:
        provisioner.provisioner.provision("corfu-vm-1")

    assert exc_info.value.vm_name == "corfu-vm-1"
    provisioner.disconnect.assert_called_once()


def test_ip_polling_is_bounded(provisioner, service_instance):
    view_manager(service_instance).CreateContainerView.return_value = make_view(make_vm("corfu-vm-1"))

    with pytest.raises(ProvisioningError) as exc_info:
        provisioner.provisioner.provision("corfu-vm-1")

    assert exc_info.value.details["attempts"] == 3
    assert provisioner.sleep.call_count == 3
    provisioner.sleep.assert_called_with(0.5)


def test_ip_appears_after_polling(provisioner, service_instance):
    vm = make_vm("corfu-vm-1")
    view_manager(service_instance).CreateContainerView.return_value = make_view(vm)
    provisioner.sleep.side_effect = lambda _: setattr(vm.guest, "ipAddress", "10.0.0.23")

    assert provisioner.provisioner.provision("corfu-vm-1") == "10.0.0.23"
    assert provisioner.sleep.call_count == 1


def test_vsphere_fault_wrapped(provisioner, service_instance):
    service_instance.RetrieveContent.side_effect = vmodl.MethodFault(msg="session expired")

    with pytest.raises(ProvisioningError):
        provisioner.provisioner.provision_all()
    provisioner.disconnect.assert_called_once()


def test_nothing_to_provision(provisioner, params):
    params.vm_ip_addresses.clear()

    assert provisioner.provisioner.provision_all() == {}
    provisioner.connect.assert_not_called()


def test_clone_spec(params):
    spec = build_clone_spec(params, "corfu-vm-1")

    assert spec.powerOn is True
    assert spec.template is False
    customization = spec.customization
    assert customization.identity.hostName.name == "corfu-vm-1"
    assert customization.identity.domain == params.domain
    assert customization.globalIPSettings.dnsServerList == params.dns_servers
    assert customization.nicSettingMap[0].adapter.subnetMask == params.subnet_mask
