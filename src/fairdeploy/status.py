"""Deployment status re-query.

The boot payload gives no completion signal, so the only way to learn how a
deployment is doing is to ask Azure again. This module reads the VM's
current power state, provisioning state and public IP.
"""

import logging
from dataclasses import dataclass

from fairdeploy.azure_cli import AzureClient
from fairdeploy.boot_payload import BOOT_LOG_PATH

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeploymentStatus:
    """Point-in-time view of a deployed VM."""

    resource_group: str
    vm_name: str
    power_state: str = "Unknown"
    provisioning_state: str = "Unknown"
    public_ip: str = ""

    @property
    def is_running(self) -> bool:
        return self.power_state.lower() == "vm running"

    @property
    def has_public_ip(self) -> bool:
        return bool(self.public_ip)

    def get_summary(self) -> str:
        ip = self.public_ip or "not assigned yet"
        return (
            f"{self.vm_name} ({self.resource_group}): {self.power_state}, "
            f"provisioning {self.provisioning_state}, public IP {ip}"
        )


def check_deployment_status(
    client: AzureClient, resource_group: str, vm_name: str
) -> DeploymentStatus:
    """Re-query Azure for a deployed VM.

    Args:
        client: Provider client
        resource_group: Resource group name
        vm_name: VM name

    Returns:
        DeploymentStatus

    Raises:
        ProviderCallError: If the VM cannot be queried
    """
    vm_data = client.show_vm(resource_group, vm_name)
    status = DeploymentStatus(
        resource_group=resource_group,
        vm_name=vm_name,
        power_state=vm_data.get("powerState") or "Unknown",
        provisioning_state=vm_data.get("provisioningState") or "Unknown",
        public_ip=vm_data.get("publicIps") or "",
    )
    logger.debug(status.get_summary())
    return status


def boot_log_hint(admin_username: str, public_ip: str) -> str:
    """Command that shows the boot payload's output on the VM."""
    return f"ssh {admin_username}@{public_ip} sudo tail -n 50 {BOOT_LOG_PATH}"


__all__ = ["DeploymentStatus", "boot_log_hint", "check_deployment_status"]
