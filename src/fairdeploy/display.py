"""Console output for deployment runs.

Human-readable progress lines and summary blocks only; there is no
machine-readable output format.
"""

from rich.console import Console

from fairdeploy.boot_payload import BOOT_LOG_PATH, COMPOSE_FILE
from fairdeploy.config import DeploymentConfig

SEPARATOR = "-" * 53


def print_start_banner(console: Console, config: DeploymentConfig) -> None:
    console.print("[bold]Starting Fairscape Demo Deployment on Azure...[/bold]")
    console.print(f"Resource Group: {config.resource_group}", highlight=False, markup=False)
    console.print(f"VM Name: {config.vm_name}", highlight=False, markup=False)
    console.print(f"Admin Username: {config.admin_username}", highlight=False, markup=False)
    console.print(f"Region: {config.region}", highlight=False, markup=False)


def print_cleanup_hint(console: Console, config: DeploymentConfig) -> None:
    """Print (never run) the command that deletes everything the run created."""
    console.print(SEPARATOR)
    console.print("To delete all created resources, run:")
    console.print(config.cleanup_command, soft_wrap=True, highlight=False, markup=False)
    console.print(SEPARATOR)


def print_access_summary(console: Console, config: DeploymentConfig, public_ip: str) -> None:
    """Print access URLs and SSH instructions once the public IP is known.

    The admin password is never echoed; it comes from the configuration.
    """
    repo_path = f"/home/{config.admin_username}/{config.repo_dir}"

    console.print(SEPARATOR)
    console.print("[bold green]Fairscape Demo VM is deploying![/bold green]")
    console.print(f"Public IP Address: {public_ip}", highlight=False)
    console.print()
    console.print(
        "It might take 5-10 minutes for the VM to fully initialize, clone the repo, "
        "and services to start."
    )
    console.print()
    console.print("Access services (assuming the default ports of the deployment's compose file):")
    console.print(f" - Fairscape Frontend: http://{public_ip}", soft_wrap=True, highlight=False)
    console.print(
        f" - Fairscape Backend API: http://{public_ip}:8080/api/", soft_wrap=True, highlight=False
    )
    console.print(f" - Minio Console: http://{public_ip}:9001", soft_wrap=True, highlight=False)
    console.print(f" - Mongo Express: http://{public_ip}:8081", soft_wrap=True, highlight=False)
    console.print()
    console.print(
        f"To SSH into the VM (password will be prompted): ssh {config.admin_username}@{public_ip}",
        soft_wrap=True,
        highlight=False,
        markup=False,
    )
    console.print(f"   VM Admin Username: {config.admin_username}", highlight=False, markup=False)
    console.print("   VM Admin Password: (as configured; not shown)")
    console.print()
    console.print(
        f"The cloned repository is at {repo_path}/", soft_wrap=True, highlight=False, markup=False
    )
    console.print(
        f"Docker logs: sudo docker-compose -f {repo_path}/{COMPOSE_FILE} logs -f <service_name>",
        soft_wrap=True,
        highlight=False,
        markup=False,
    )
    console.print(f"Boot script output on the VM: {BOOT_LOG_PATH}", highlight=False)
    console.print(SEPARATOR)


def print_completion(console: Console, public_ip: str) -> None:
    console.print(SEPARATOR)
    console.print("[bold green]Deployment script finished.[/bold green]")
    console.print("Please wait a few minutes for all services to come online on the VM.")
    console.print(
        f"Verify with: curl http://{public_ip}:8080/api/health (or similar endpoint)",
        soft_wrap=True,
        highlight=False,
    )
    console.print(
        f"And: curl http://{public_ip} (if frontend is on port 80)",
        soft_wrap=True,
        highlight=False,
        markup=False,
    )
    console.print(SEPARATOR)


__all__ = [
    "print_access_summary",
    "print_cleanup_hint",
    "print_completion",
    "print_start_banner",
]
