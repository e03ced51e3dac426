"""vSphere VM provisioning: find or clone each host, then wait for its IP."""

import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, Optional
from urllib.parse import urlparse

from pyVim.connect import Disconnect, SmartConnect
from pyVim.task import WaitForTask
from pyVmomi import vim, vmodl

from ..core.errors import ProvisioningError
from ..core.log import get_logger, log_event
from ..core.types import TimeoutConfig, VmUniverseParams

logger = get_logger(__name__)

DEFAULT_VSPHERE_PORT = 443


def build_clone_spec(params: VmUniverseParams, vm_name: str) -> vim.vm.CloneSpec:
    """Clone spec with a Linux guest customization for ``vm_name``.

    The clone lands on the template's datastore, is powered on, gets a fixed
    hostname and takes its address from DHCP.
    """
    identity = vim.vm.customization.LinuxPrep(
        domain=params.domain,
        hwClockUTC=True,
        timeZone=params.time_zone,
        hostName=vim.vm.customization.FixedName(name=vm_name),
    )
    ip_settings = vim.vm.customization.IPSettings(
        ip=vim.vm.customization.DhcpIpGenerator(),
        gateway=[params.gateway],
        subnetMask=params.subnet_mask,
    )
    customization = vim.vm.customization.Specification(
        options=vim.vm.customization.LinuxOptions(),
        identity=identity,
        globalIPSettings=vim.vm.customization.GlobalIPSettings(
            dnsServerList=list(params.dns_servers),
            dnsSuffixList=list(params.dns_suffixes),
        ),
        nicSettingMap=[vim.vm.customization.AdapterMapping(adapter=ip_settings)],
    )
    return vim.vm.CloneSpec(
        location=vim.vm.RelocateSpec(),
        powerOn=True,
        template=False,
        customization=customization,
    )


class VmProvisioner:
    """Makes sure every VM named in the universe exists and has an IP address."""

    def __init__(self,
                 params: VmUniverseParams,
                 timeouts: Optional[TimeoutConfig] = None,
                 max_workers: int = 10,
                 connect: Callable = SmartConnect,
                 sleep: Callable[[float], None] = time.sleep) -> None:
        self._params = params
        self._timeouts = timeouts or TimeoutConfig()
        self._max_workers = max_workers
        self._connect = connect
        self._sleep = sleep

    def provision_all(self) -> Dict[str, str]:
        """Provision every VM concurrently and record its IP address.

        Raises:
            ProvisioningError: If any VM could not be provisioned
        """
        vm_names = self._params.vm_names()
        if not vm_names:
            return {}

        with ThreadPoolExecutor(max_workers=self._max_workers,
                                thread_name_prefix="VmProvision") as executor:
            futures = {name: executor.submit(self.provision, name) for name in vm_names}
            wait(futures.values())

        addresses = {}
        for name, future in futures.items():
            error = future.exception()
            if error is not None:
                if isinstance(error, ProvisioningError):
                    raise error
                raise ProvisioningError(f"Deploy VM {name} failed: {error}", vm_name=name) from error
            addresses[name] = future.result()

        logger.info("The deployed VMs are: %s", addresses)
        return addresses

    def provision(self, vm_name: str) -> str:
        """Find or clone ``vm_name`` and return its IP address."""
        service_instance = self._open_connection()
        try:
            content = service_instance.RetrieveContent()
            vm = self._find_vm(content, vm_name)
            if vm is None:
                vm = self._clone(content, vm_name)
            else:
                logger.info("VM %s already exists", vm_name)

            ip_address = self._wait_for_ip(vm, vm_name)
        except vmodl.MethodFault as e:
            raise ProvisioningError(f"Deploy VM {vm_name} failed: {e}", vm_name=vm_name) from e
        finally:
            Disconnect(service_instance)

        self._params.update_ip_address(vm_name, ip_address)
        log_event(logger, "vm", f"VM {vm_name} is up at {ip_address}",
                  vm_name=vm_name, ip_address=ip_address)
        return ip_address

    def _open_connection(self):
        url = urlparse(self._params.vsphere_url)
        host = url.hostname or self._params.vsphere_url
        try:
            return self._connect(
                host=host,
                port=url.port or DEFAULT_VSPHERE_PORT,
                user=self._params.vsphere_username,
                pwd=self._params.vsphere_password,
                disableSslCertValidation=True,
            )
        except (vmodl.MethodFault, OSError) as e:
            raise ProvisioningError(
                f"Can't connect to vSphere at {self._params.vsphere_url}: {e}"
            ) from e

    def _find_vm(self, content, vm_name: str):
        view = content.viewManager.CreateContainerView(content.rootFolder, [vim.VirtualMachine], True)
        try:
            for vm in view.view:
                if vm.name == vm_name:
                    return vm
            return None
        finally:
            view.Destroy()

    def _clone(self, content, vm_name: str):
        template = self._find_vm(content, self._params.template_vm_name)
        if template is None:
            raise ProvisioningError(
                f"Template VM {self._params.template_vm_name} not found", vm_name=vm_name
            )

        logger.info("Deploying the VM %s via vSphere %s...", vm_name, self._params.vsphere_url)
        task = template.Clone(folder=template.parent, name=vm_name,
                              spec=build_clone_spec(self._params, vm_name))
        WaitForTask(task)

        vm = self._find_vm(content, vm_name)
        if vm is None:
            raise ProvisioningError(f"Cloned VM {vm_name} is missing from the inventory",
                                    vm_name=vm_name)
        return vm

    def _wait_for_ip(self, vm, vm_name: str) -> str:
        """Poll the guest IP a bounded number of times."""
        attempts = self._timeouts.ip_poll_max_attempts
        interval = self._timeouts.ip_poll_interval
        logger.info("Getting IP address for %s from DHCP...", vm_name)
        for _ in range(attempts):
            ip_address = vm.guest.ipAddress if vm.guest else None
            if ip_address:
                return ip_address
            self._sleep(interval)

        raise ProvisioningError(
            f"VM {vm_name} reported no IP address after {attempts} attempts",
            vm_name=vm_name,
            details={"attempts": attempts, "interval": interval},
        )
