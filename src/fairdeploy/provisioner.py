"""Deployment orchestration.

Runs the deployment phases in order, each blocking on the previous one:

    START -> VALIDATED -> RESOURCE_GROUP_READY -> VM_CREATING -> VM_READY
          -> IP_KNOWN -> NSG_CONFIGURED -> DONE

Any error moves the run straight to FAILED. There are no retries and no
backward transitions. Nothing is rolled back: once the resource group
exists, the command that deletes it is printed so the operator can reclaim
cost. With auto_teardown enabled that command is also issued on failure.

The boot payload is handed to Azure with the VM and runs on its own once
VM creation returns; its outcome is never observed here.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum

from rich.console import Console

from fairdeploy.azure_cli import AzureClient, requery_ip_command
from fairdeploy.boot_payload import generate_boot_payload
from fairdeploy.config import DeploymentConfig
from fairdeploy.display import (
    print_access_summary,
    print_cleanup_hint,
    print_completion,
    print_start_banner,
)
from fairdeploy.exceptions import (
    FairdeployError,
    ProviderCallError,
    ProvisioningIncomplete,
)
from fairdeploy.nsg_rules import InboundRule, configure_inbound_rules, validate_rule_table
from fairdeploy.validation import (
    validate_admin_password,
    validate_admin_username,
    validate_resource_name,
)

logger = logging.getLogger(__name__)


class Phase(Enum):
    """Deployment run states."""

    START = "start"
    VALIDATED = "validated"
    RESOURCE_GROUP_READY = "resource_group_ready"
    VM_CREATING = "vm_creating"
    VM_READY = "vm_ready"
    IP_KNOWN = "ip_known"
    NSG_CONFIGURED = "nsg_configured"
    DONE = "done"
    FAILED = "failed"


# Forward transitions only; FAILED is reachable from every non-terminal state
_NEXT_PHASE: dict[Phase, Phase] = {
    Phase.START: Phase.VALIDATED,
    Phase.VALIDATED: Phase.RESOURCE_GROUP_READY,
    Phase.RESOURCE_GROUP_READY: Phase.VM_CREATING,
    Phase.VM_CREATING: Phase.VM_READY,
    Phase.VM_READY: Phase.IP_KNOWN,
    Phase.IP_KNOWN: Phase.NSG_CONFIGURED,
    Phase.NSG_CONFIGURED: Phase.DONE,
}


@dataclass(frozen=True)
class ProvisionedResources:
    """Handles to what a run has created so far."""

    resource_group: str
    vm_name: str
    nsg_name: str
    public_ip: str = ""
    vm_id: str | None = None
    rules: tuple[InboundRule, ...] = ()


@dataclass
class DeploymentResult:
    """Outcome of a deployment run."""

    config: DeploymentConfig
    resources: ProvisionedResources
    phases: list[Phase] = field(default_factory=list)
    error: FairdeployError | None = None
    exit_code: int = 0
    torn_down: bool = False

    @property
    def success(self) -> bool:
        return self.error is None and self.final_phase == Phase.DONE

    @property
    def final_phase(self) -> Phase:
        return self.phases[-1] if self.phases else Phase.START


def exit_code_for(error: FairdeployError) -> int:
    """Process exit code for a failed run.

    Provider call failures keep the az call's own status when it has one.
    """
    if isinstance(error, ProviderCallError) and error.returncode > 0:
        return error.returncode
    return 1


class Provisioner:
    """Provision the single-VM demo environment.

    Example:
        >>> config = load_config()
        >>> result = Provisioner(config, AzureCLIClient()).run()
        >>> result.exit_code
        0
    """

    def __init__(
        self,
        config: DeploymentConfig,
        client: AzureClient,
        console: Console | None = None,
    ):
        """Initialize provisioner.

        Args:
            config: Deployment configuration (never modified)
            client: Provider client used for every remote call
            console: Rich console for progress output
        """
        self.config = config
        self.client = client
        self.console = console or Console()
        self._phases: list[Phase] = [Phase.START]
        self._payload = ""
        self._resource_group_requested = False

    @property
    def phase(self) -> Phase:
        return self._phases[-1]

    def _advance(self, expected: Phase) -> None:
        """Move to the next state, which must be `expected`."""
        next_phase = _NEXT_PHASE.get(self.phase)
        if next_phase is not expected:
            raise RuntimeError(f"Invalid transition {self.phase.value} -> {expected.value}")
        self._phases.append(next_phase)
        logger.debug(f"Deployment state: {next_phase.value}")

    def _report(self, msg: str) -> None:
        self.console.print(msg, highlight=False, markup=False)
        logger.debug(msg)

    def _resource_group_may_exist(self) -> bool:
        """True once the create call was issued, even if it did not return."""
        return self._resource_group_requested

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Check every local parameter before any remote call.

        Raises:
            ValidationError: On the first failing check
        """
        config = self.config
        validate_admin_password(
            config.admin_password, require_special_char=config.require_special_char
        )
        validate_admin_username(config.admin_username)
        validate_resource_name(config.resource_group, "Resource group", max_length=90)
        validate_resource_name(config.vm_name, "VM", max_length=64)
        validate_rule_table(config.inbound_rules)
        self._payload = generate_boot_payload(
            config.admin_username, config.repo_url, config.repo_dir
        )
        self._advance(Phase.VALIDATED)

    def create_resource_group(self) -> None:
        self._report("Creating resource group...")
        self._resource_group_requested = True
        self.client.create_resource_group(self.config.resource_group, self.config.region)
        self._advance(Phase.RESOURCE_GROUP_READY)

    def create_vm(self, resources: ProvisionedResources) -> ProvisionedResources:
        """Create the VM with the generated boot payload.

        Returns when Azure has created the VM; the payload keeps running.
        """
        config = self.config
        self._advance(Phase.VM_CREATING)
        self._report(
            f"Creating virtual machine ({config.vm_name})... This may take a few minutes."
        )
        self._report("Using password authentication (demo only; prefer SSH keys elsewhere).")

        vm_data = self.client.create_vm(
            resource_group=config.resource_group,
            name=config.vm_name,
            image=config.image,
            size=config.vm_size,
            admin_username=config.admin_username,
            admin_password=config.admin_password,
            custom_data=self._payload,
        )
        self._advance(Phase.VM_READY)
        return replace(resources, vm_id=vm_data.get("id"))

    def discover_public_ip(self, resources: ProvisionedResources) -> ProvisionedResources:
        """Read the VM's public IP with a single query.

        Raises:
            ProvisioningIncomplete: If no address is assigned yet
        """
        self._report("Fetching Public IP Address...")
        public_ip = self.client.get_public_ip(self.config.resource_group, self.config.vm_name)

        if not public_ip:
            requery = requery_ip_command(self.config.resource_group, self.config.vm_name)
            raise ProvisioningIncomplete(
                "Failed to get public IP address. VM might still be provisioning. "
                f"You can try: {requery}",
                requery_command=requery,
            )

        self._advance(Phase.IP_KNOWN)
        return replace(resources, public_ip=public_ip)

    def configure_network(self, resources: ProvisionedResources) -> ProvisionedResources:
        self._report(f"Configuring Network Security Group ({resources.nsg_name}) rules...")
        created = configure_inbound_rules(
            self.client,
            self.config.resource_group,
            resources.nsg_name,
            self.config.inbound_rules,
            progress_callback=self._report,
        )
        self._advance(Phase.NSG_CONFIGURED)
        return replace(resources, rules=tuple(created))

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> DeploymentResult:
        """Run every phase, stopping at the first error.

        Returns:
            DeploymentResult; on failure it carries the error and exit code

        Raises:
            KeyboardInterrupt: If the user cancels (cleanup hint printed first)
        """
        config = self.config
        resources = ProvisionedResources(
            resource_group=config.resource_group,
            vm_name=config.vm_name,
            nsg_name=config.nsg_name,
        )
        print_start_banner(self.console, config)

        try:
            self.validate()
            self.create_resource_group()
            resources = self.create_vm(resources)
            resources = self.discover_public_ip(resources)
            print_access_summary(self.console, config, resources.public_ip)
            resources = self.configure_network(resources)

        except FairdeployError as e:
            return self._fail(resources, e)

        except KeyboardInterrupt:
            self.console.print("[yellow]Cancelled by user.[/yellow]")
            if self._resource_group_may_exist():
                print_cleanup_hint(self.console, config)
            raise

        self._advance(Phase.DONE)
        print_completion(self.console, resources.public_ip)
        print_cleanup_hint(self.console, config)
        return DeploymentResult(config=config, resources=resources, phases=list(self._phases))

    def _fail(self, resources: ProvisionedResources, error: FairdeployError) -> DeploymentResult:
        # Printed verbatim: error text can contain user input
        if isinstance(error, ProvisioningIncomplete):
            self.console.print(str(error), style="red", highlight=False, markup=False)
        else:
            self.console.print(f"Error: {error}", style="red", highlight=False, markup=False)
        logger.debug(f"Deployment failed in state {self.phase.value}: {error}")

        resource_group_exists = self._resource_group_may_exist()
        self._phases.append(Phase.FAILED)

        torn_down = False
        if resource_group_exists:
            if self.config.auto_teardown:
                torn_down = self._teardown()
            if not torn_down:
                print_cleanup_hint(self.console, self.config)

        return DeploymentResult(
            config=self.config,
            resources=resources,
            phases=list(self._phases),
            error=error,
            exit_code=exit_code_for(error),
            torn_down=torn_down,
        )

    def _teardown(self) -> bool:
        """Request deletion of the run's resource group (auto_teardown mode)."""
        self._report(f"Auto-teardown: deleting resource group {self.config.resource_group}...")
        try:
            self.client.delete_resource_group(self.config.resource_group)
        except ProviderCallError as e:
            logger.debug(f"Auto-teardown failed: {e}")
            self.console.print("[yellow]Auto-teardown failed; delete manually.[/yellow]")
            return False
        self._report("Resource group deletion requested (runs in the background).")
        return True


__all__ = [
    "DeploymentResult",
    "Phase",
    "ProvisionedResources",
    "Provisioner",
    "exit_code_for",
]
