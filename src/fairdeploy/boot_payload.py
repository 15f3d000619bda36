"""First-boot script for the demo VM.

The script is passed to az vm create as --custom-data and executed once by
cloud-init when the VM first boots. It installs Docker, clones the
deployment repository into the admin user's home and starts the Compose
stack detached.

The payload runs out-of-band: VM creation returns as soon as Azure accepts
the request, and nothing reports the script's outcome back. Clone or
compose failures only show up on the VM in /var/log/cloud-init-output.log.
Use `fairdeploy status` to re-query the VM afterwards.
"""

import logging

from fairdeploy.validation import (
    repo_dir_name,
    validate_admin_username,
    validate_clone_dir,
    validate_repo_url,
)

logger = logging.getLogger(__name__)

BOOT_PACKAGES = [
    "apt-transport-https",
    "ca-certificates",
    "curl",
    "software-properties-common",
    "git",
    "docker.io",
    "docker-compose",
    "wget",
]

COMPOSE_FILE = "docker-compose.yaml"

# Where cloud-init writes the script's output on the VM
BOOT_LOG_PATH = "/var/log/cloud-init-output.log"


def generate_boot_payload(
    admin_username: str, repo_url: str, clone_dir: str | None = None
) -> str:
    """Generate the first-boot shell script.

    Args:
        admin_username: VM admin user; the repository is cloned into their home
        repo_url: Deployment repository to clone
        clone_dir: Directory git clone creates (default: repository basename
            without .git)

    Returns:
        Bash script content

    Raises:
        ValidationError: If any interpolated value is unsafe

    Example:
        >>> script = generate_boot_payload("alice", "https://example.com/repo.git")
        >>> "git clone https://example.com/repo.git" in script
        True
    """
    validate_admin_username(admin_username)
    validate_repo_url(repo_url)
    clone_dir = validate_clone_dir(clone_dir or repo_dir_name(repo_url))

    home = f"/home/{admin_username}"
    repo_path = f"{home}/{clone_dir}"
    packages = " ".join(BOOT_PACKAGES)

    logger.debug(f"Generating boot payload: {repo_url} -> {repo_path}")

    return f"""#!/bin/bash
sudo apt-get update -y
sudo apt-get install -y {packages}

sudo systemctl start docker
sudo systemctl enable docker

cd {home}/

echo "Cloning repository: {repo_url}..."
git clone {repo_url}
if [ ! -d "{repo_path}" ]; then
    echo "Failed to clone deployment repository: {repo_url}"
    exit 1
fi
echo "Repository cloned successfully."

cd {repo_path}/

echo "Starting Docker Compose stack from {repo_path}/{COMPOSE_FILE}..."
if [ ! -f "./{COMPOSE_FILE}" ]; then
    echo "{COMPOSE_FILE} not found in the root of the cloned repository."
    exit 1
fi

sudo docker-compose -f {COMPOSE_FILE} up -d
echo "Docker Compose up -d command issued."
"""


__all__ = ["BOOT_LOG_PATH", "BOOT_PACKAGES", "COMPOSE_FILE", "generate_boot_payload"]
