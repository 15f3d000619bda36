"""
Shared test fixtures for fairdeploy tests.

This module provides:
- StubAzureClient: an in-memory AzureClient that records every call
- Deployment configuration fixtures
- A rich console that writes to a string buffer
"""

import io
from typing import Any

import pytest
from rich.console import Console

from fairdeploy.exceptions import ProviderCallError

# ============================================================================
# STUB AZURE CLIENT
# ============================================================================


class StubAzureClient:
    """AzureClient stand-in that accepts every call unless told otherwise.

    Attributes:
        calls: (method name, args) tuples in call order
        public_ip: Address get_public_ip returns ("" = not assigned yet)
        fail_on: Method name -> ProviderCallError to raise from it
        fail_on_rule: NSG rule name whose create call should fail
    """

    def __init__(self, public_ip: str = "203.0.113.5"):
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.public_ip = public_ip
        self.fail_on: dict[str, ProviderCallError] = {}
        self.fail_on_rule: str | None = None
        self.vm_data: dict[str, Any] = {
            "powerState": "VM running",
            "provisioningState": "Succeeded",
            "publicIps": public_ip,
        }

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if method in self.fail_on:
            raise self.fail_on[method]

    def calls_to(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    def create_resource_group(self, name: str, location: str) -> dict[str, Any]:
        self._record("create_resource_group", name, location)
        return {"name": name, "location": location}

    def create_vm(
        self,
        resource_group: str,
        name: str,
        image: str,
        size: str,
        admin_username: str,
        admin_password: str,
        custom_data: str,
    ) -> dict[str, Any]:
        self._record(
            "create_vm",
            resource_group,
            name,
            image,
            size,
            admin_username,
            admin_password,
            custom_data,
        )
        return {"id": f"/subscriptions/x/resourceGroups/{resource_group}/vms/{name}"}

    def get_public_ip(self, resource_group: str, vm_name: str) -> str:
        self._record("get_public_ip", resource_group, vm_name)
        return self.public_ip

    def show_vm(self, resource_group: str, vm_name: str) -> dict[str, Any]:
        self._record("show_vm", resource_group, vm_name)
        return self.vm_data

    def create_nsg_rule(self, resource_group: str, nsg_name: str, rule: Any) -> None:
        self._record("create_nsg_rule", resource_group, nsg_name, rule)
        if rule.name == self.fail_on_rule:
            raise ProviderCallError(
                f"rule {rule.name} rejected", returncode=3, stderr="SecurityRuleConflict"
            )

    def delete_resource_group(self, name: str) -> None:
        self._record("delete_resource_group", name)


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def stub_client():
    """Stub Azure client that returns public IP 203.0.113.5."""
    return StubAzureClient()


@pytest.fixture
def deployment_config():
    """Valid deployment configuration with fresh random names."""
    from fairdeploy.config import DeploymentConfig

    return DeploymentConfig.build(admin_password="ValidPassword123")


@pytest.fixture
def output():
    """String buffer the test console writes to."""
    return io.StringIO()


@pytest.fixture
def console(output):
    """Rich console writing plain text to the output buffer."""
    return Console(file=output, width=200, color_system=None, force_terminal=False)
