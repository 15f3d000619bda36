"""Command line interface for fairdeploy.

Running `fairdeploy` with no arguments deploys the demo environment with
the configured defaults. Subcommands:

    deploy     Same as no arguments, with optional overrides
    status     Re-query a deployed VM (the boot script reports nothing back)
    teardown   Delete a deployment's resource group
"""

import logging
import sys

import click
from rich.console import Console

from fairdeploy import __version__
from fairdeploy.azure_cli import AzureCLIClient
from fairdeploy.config import DEFAULT_ADMIN_USERNAME, DEFAULT_AZ_TIMEOUT, load_config
from fairdeploy.exceptions import ConfigError, ProviderCallError
from fairdeploy.provisioner import Provisioner, exit_code_for
from fairdeploy.status import boot_log_hint, check_deployment_status

logger = logging.getLogger(__name__)


def _run_deploy(
    config_path: str | None = None,
    auto_teardown: bool | None = None,
    require_special_char: bool | None = None,
) -> None:
    try:
        config = load_config(
            config_path,
            auto_teardown=auto_teardown,
            require_special_char=require_special_char,
        )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    console = Console()
    client = AzureCLIClient(timeout=config.az_timeout, console=console)

    try:
        result = Provisioner(config, client, console=console).run()
    except KeyboardInterrupt:
        click.echo("\nDeployment interrupted by user.", err=True)
        sys.exit(130)

    sys.exit(result.exit_code)


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """fairdeploy - Fairscape demo environment on a single Azure VM.

    Creates a resource group and an Ubuntu VM, boots it with a script that
    installs Docker, clones the deployment repository and starts its
    Docker Compose stack, then opens the stack's inbound ports.

    \b
    Requires the Azure CLI, logged in (az login).

    \b
    CONFIGURATION:
        Config file: ~/.fairdeploy/config.toml (optional)
        Environment: FAIRDEPLOY_REGION, FAIRDEPLOY_ADMIN_PASSWORD, ...
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")

    if ctx.invoked_subcommand is None:
        _run_deploy()


@main.command()
@click.option("--config", "config_path", help="Config file path", type=click.Path())
@click.option(
    "--auto-teardown/--no-auto-teardown",
    default=None,
    help="Delete the resource group automatically if the run fails",
)
@click.option(
    "--require-special-char/--no-require-special-char",
    default=None,
    help="Also require a special character in the admin password",
)
def deploy(
    config_path: str | None, auto_teardown: bool | None, require_special_char: bool | None
) -> None:
    """Deploy the demo environment.

    \b
    Examples:
        $ fairdeploy deploy
        $ fairdeploy deploy --config ./demo.toml --auto-teardown
    """
    _run_deploy(config_path, auto_teardown, require_special_char)


@main.command()
@click.argument("resource_group")
@click.argument("vm_name")
@click.option(
    "--admin-username", default=DEFAULT_ADMIN_USERNAME, show_default=True, help="VM admin user"
)
def status(resource_group: str, vm_name: str, admin_username: str) -> None:
    """Show the current state of a deployed VM.

    \b
    Example:
        $ fairdeploy status fairscape-demo-rg-1a2b3c fairscape-vm-4d5e6f
    """
    client = AzureCLIClient(timeout=DEFAULT_AZ_TIMEOUT)
    try:
        vm_status = check_deployment_status(client, resource_group, vm_name)
    except ProviderCallError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(exit_code_for(e))

    click.echo(vm_status.get_summary())
    if vm_status.has_public_ip:
        click.echo(f"Boot script output: {boot_log_hint(admin_username, vm_status.public_ip)}")
    else:
        click.echo("No public IP yet; try again in a minute.")


@main.command()
@click.argument("resource_group")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def teardown(resource_group: str, yes: bool) -> None:
    """Delete a deployment's resource group and everything in it.

    \b
    Example:
        $ fairdeploy teardown fairscape-demo-rg-1a2b3c --yes
    """
    if not yes and not click.confirm(
        f"Delete resource group {resource_group} and all its resources?"
    ):
        click.echo("Cancelled.")
        return

    client = AzureCLIClient(timeout=DEFAULT_AZ_TIMEOUT)
    try:
        client.delete_resource_group(resource_group)
    except ProviderCallError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(exit_code_for(e))

    click.echo(f"Deletion of {resource_group} requested (runs in the background).")


if __name__ == "__main__":
    main()
