"""Deployment configuration.

Builds the immutable DeploymentConfig every provisioning phase receives.
Values are layered, later layers winning:

1. Built-in defaults (the demo environment's constants)
2. Optional TOML file (--config PATH, or ~/.fairdeploy/config.toml if present)
3. FAIRDEPLOY_* environment variables
4. Explicit overrides from the CLI

Resource-group and VM names get a fresh random hex suffix every time a
config is built, so two runs never collide on names.
"""

import logging
import os
import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Fallback for Python 3.11+
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

from fairdeploy.exceptions import ConfigError
from fairdeploy.nsg_rules import DEFAULT_INBOUND_RULES, InboundRule
from fairdeploy.validation import repo_dir_name

logger = logging.getLogger(__name__)

DEFAULT_REGION = "eastus"
DEFAULT_VM_IMAGE = "UbuntuLTS"
DEFAULT_VM_SIZE = "Standard_B2s"  # 2 vCPUs, 4 GiB RAM
DEFAULT_ADMIN_USERNAME = "fairscape"
# Demo-only credential; override with FAIRDEPLOY_ADMIN_PASSWORD
DEFAULT_ADMIN_PASSWORD = "YourComplexPassword123!"  # noqa: S105
DEFAULT_REPO_URL = "https://github.com/fairscape/fairscape_deployment.git"
DEFAULT_RESOURCE_GROUP_PREFIX = "fairscape-demo-rg"
DEFAULT_VM_NAME_PREFIX = "fairscape-vm"
DEFAULT_AZ_TIMEOUT = 600

DEFAULT_CONFIG_FILE = Path.home() / ".fairdeploy" / "config.toml"

# Setting name -> environment variable
ENV_VARS: dict[str, str] = {
    "region": "FAIRDEPLOY_REGION",
    "vm_size": "FAIRDEPLOY_VM_SIZE",
    "image": "FAIRDEPLOY_VM_IMAGE",
    "admin_username": "FAIRDEPLOY_ADMIN_USERNAME",
    "admin_password": "FAIRDEPLOY_ADMIN_PASSWORD",
    "repo_url": "FAIRDEPLOY_REPO_URL",
    "clone_dir": "FAIRDEPLOY_CLONE_DIR",
    "resource_group_prefix": "FAIRDEPLOY_RESOURCE_GROUP_PREFIX",
    "vm_name_prefix": "FAIRDEPLOY_VM_NAME_PREFIX",
    "auto_teardown": "FAIRDEPLOY_AUTO_TEARDOWN",
    "require_special_char": "FAIRDEPLOY_REQUIRE_SPECIAL_CHAR",
    "az_timeout": "FAIRDEPLOY_AZ_TIMEOUT",
}

_BOOL_SETTINGS = {"auto_teardown", "require_special_char"}
_INT_SETTINGS = {"az_timeout"}


def random_suffix() -> str:
    """Random 6-character hex token for per-run resource names."""
    return secrets.token_hex(3)


@dataclass(frozen=True)
class DeploymentConfig:
    """Everything one deployment run needs. Never mutated after creation."""

    resource_group: str
    vm_name: str
    region: str = DEFAULT_REGION
    image: str = DEFAULT_VM_IMAGE
    vm_size: str = DEFAULT_VM_SIZE
    admin_username: str = DEFAULT_ADMIN_USERNAME
    admin_password: str = field(default=DEFAULT_ADMIN_PASSWORD, repr=False)
    repo_url: str = DEFAULT_REPO_URL
    clone_dir: str = ""  # empty = derived from repo_url
    require_special_char: bool = False
    auto_teardown: bool = False
    az_timeout: int = DEFAULT_AZ_TIMEOUT
    inbound_rules: tuple[InboundRule, ...] = DEFAULT_INBOUND_RULES

    @property
    def repo_dir(self) -> str:
        """Directory git clone creates under the admin user's home."""
        return self.clone_dir or repo_dir_name(self.repo_url)

    @property
    def nsg_name(self) -> str:
        """NSG name az vm create derives from the VM name."""
        return f"{self.vm_name}NSG"

    @property
    def cleanup_command(self) -> str:
        return f"az group delete --name {self.resource_group} --yes --no-wait"

    @property
    def uses_default_password(self) -> bool:
        return self.admin_password == DEFAULT_ADMIN_PASSWORD

    @classmethod
    def build(
        cls,
        resource_group_prefix: str = DEFAULT_RESOURCE_GROUP_PREFIX,
        vm_name_prefix: str = DEFAULT_VM_NAME_PREFIX,
        **settings: Any,
    ) -> "DeploymentConfig":
        """Create a config with freshly suffixed resource-group and VM names.

        Args:
            resource_group_prefix: Resource group name before the random suffix
            vm_name_prefix: VM name before the random suffix
            **settings: Any other DeploymentConfig field

        Returns:
            New DeploymentConfig

        Raises:
            ConfigError: If an unknown setting is passed
        """
        known = {f.name for f in fields(cls)} - {"resource_group", "vm_name"}
        unknown = set(settings) - known
        if unknown:
            raise ConfigError(f"Unknown configuration settings: {', '.join(sorted(unknown))}")

        return cls(
            resource_group=f"{resource_group_prefix}-{random_suffix()}",
            vm_name=f"{vm_name_prefix}-{random_suffix()}",
            **settings,
        )


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw file or environment value to the setting's type."""
    if name in _BOOL_SETTINGS:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in {"1", "true", "yes", "on"}:
            return True
        if text in {"0", "false", "no", "off", ""}:
            return False
        raise ConfigError(f"Invalid boolean for {name}: {value!r}")
    if name in _INT_SETTINGS:
        try:
            number = int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid integer for {name}: {value!r}") from e
        if number <= 0:
            raise ConfigError(f"{name} must be positive, got {number}")
        return number
    if not isinstance(value, str):
        raise ConfigError(f"Invalid value for {name}: expected a string, got {value!r}")
    return value


def load_config_file(path: Path) -> dict[str, Any]:
    """Read settings from a TOML file.

    Settings may sit at the top level or under a [deployment] table.

    Raises:
        ConfigError: If the file is missing, unreadable or has unknown keys
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomli.load(f)
    except (OSError, tomli.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    settings = data.get("deployment", data)
    unknown = set(settings) - set(ENV_VARS)
    if unknown:
        raise ConfigError(f"Unknown keys in {path}: {', '.join(sorted(unknown))}")

    logger.debug(f"Loaded {len(settings)} settings from {path}")
    return {name: _coerce(name, value) for name, value in settings.items()}


def settings_from_environment(env: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect FAIRDEPLOY_* settings that are set in the environment."""
    env = os.environ if env is None else env
    settings: dict[str, Any] = {}
    for name, var in ENV_VARS.items():
        if var in env:
            settings[name] = _coerce(name, env[var])
    return settings


def load_config(
    config_path: str | None = None,
    env: Mapping[str, str] | None = None,
    **overrides: Any,
) -> DeploymentConfig:
    """Build a DeploymentConfig from defaults, file, environment and overrides.

    Args:
        config_path: Explicit TOML file (must exist). If None, the default
            file is used when it exists.
        env: Environment mapping (default: os.environ)
        **overrides: Settings that win over everything else; None values
            are ignored

    Returns:
        Newly built DeploymentConfig with fresh name suffixes

    Raises:
        ConfigError: If any layer is invalid
    """
    settings: dict[str, Any] = {}

    if config_path:
        settings.update(load_config_file(Path(config_path).expanduser()))
    elif DEFAULT_CONFIG_FILE.exists():
        settings.update(load_config_file(DEFAULT_CONFIG_FILE))

    settings.update(settings_from_environment(env))
    settings.update({k: v for k, v in overrides.items() if v is not None})

    config = DeploymentConfig.build(**settings)
    if config.uses_default_password:
        logger.warning(
            "Using the built-in demo admin password. "
            f"Set {ENV_VARS['admin_password']} for anything beyond a throwaway demo."
        )
    return config


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ENV_VARS",
    "DeploymentConfig",
    "load_config",
    "load_config_file",
    "random_suffix",
    "settings_from_environment",
]
