"""Azure CLI execution with visibility.

Every provider call fairdeploy makes goes through this module:
- AzureCLIExecutor runs one az command, showing the (sanitized) command
  line and a spinner while it runs
- AzureClient wraps the handful of az commands a deployment needs and
  turns failures into ProviderCallError

There are no retries. A failing az call is reported with its own error
output and the run stops.

Security:
- Secret parameter values (--admin-password etc.) are replaced with ***
  before display or logging
- The same values are masked in az error output
- The --custom-data payload is elided from displayed commands
- No shell=True
"""

import json
import logging
import os
import subprocess
import sys
import time
from typing import Any, ClassVar, Protocol

from rich.console import Console
from rich.text import Text

from fairdeploy.exceptions import ProviderCallError
from fairdeploy.nsg_rules import InboundRule

logger = logging.getLogger(__name__)


# ============================================================================
# Command Sanitization
# ============================================================================


class CommandSanitizer:
    """Redact sensitive values from az command lines.

    Examples:
        >>> CommandSanitizer().sanitize(["az", "vm", "create", "--admin-password", "Secret"])
        ['az', 'vm', 'create', '--admin-password', '***']
    """

    SENSITIVE_PARAMS: ClassVar[set[str]] = {
        "--password",
        "--admin-password",
        "--client-secret",
        "--secret",
        "--ssh-key-values",
        "--account-key",
        "--connection-string",
        "--sas-token",
        "--token",
        "-p",
    }

    # Values shown as a size only (long, not secret)
    ELIDED_PARAMS: ClassVar[set[str]] = {"--custom-data", "--user-data"}

    REDACTED = "***"

    def sanitize(self, command: list[str]) -> list[str]:
        """Return a copy of the command that is safe to display."""
        result: list[str] = []
        i = 0
        while i < len(command):
            arg = command[i]
            param = arg.lower()
            result.append(arg)

            if i + 1 < len(command) and self._is_sensitive_param(param):
                result.append(self.REDACTED)
                i += 2
            elif i + 1 < len(command) and param in self.ELIDED_PARAMS:
                result.append(f"<{len(command[i + 1])} bytes>")
                i += 2
            elif "=" in arg:
                name, _ = arg.split("=", 1)
                if self._is_sensitive_param(name.lower()):
                    result[-1] = f"{name}={self.REDACTED}"
                i += 1
            else:
                i += 1

        return result

    def _is_sensitive_param(self, param: str) -> bool:
        return param in self.SENSITIVE_PARAMS

    def secret_values(self, command: list[str]) -> list[str]:
        """Values passed to sensitive parameters in a command."""
        values = []
        for i, arg in enumerate(command):
            name, sep, value = arg.partition("=")
            if sep and self._is_sensitive_param(name.lower()):
                values.append(value)
            elif i + 1 < len(command) and self._is_sensitive_param(arg.lower()):
                values.append(command[i + 1])
        return [v for v in values if v]

    def redact_output(self, text: str, command: list[str]) -> str:
        """Replace any secret from the command that az echoes back in its output."""
        for value in self.secret_values(command):
            text = text.replace(value, self.REDACTED)
        return text


# ============================================================================
# TTY Detection
# ============================================================================


class TTYDetector:
    """Detect whether output goes to an interactive terminal."""

    @staticmethod
    def is_tty() -> bool:
        """Check if stdout is a TTY (False in CI or when piped)."""
        ci_env_vars = ["CI", "GITHUB_ACTIONS", "TRAVIS", "CIRCLECI", "GITLAB_CI"]
        if any(os.getenv(var) for var in ci_env_vars):
            return False

        try:
            return sys.stdout.isatty()
        except AttributeError:
            return False

    @staticmethod
    def supports_interactive_features() -> bool:
        """Check if spinners and live updates should be used."""
        if os.getenv("TERM") == "dumb":
            return False
        return TTYDetector.is_tty()


# ============================================================================
# Azure CLI Executor
# ============================================================================


class AzureCLIExecutor:
    """Execute Azure CLI commands with visibility and progress.

    Examples:
        >>> executor = AzureCLIExecutor(show_progress=True)
        >>> result = executor.execute(["az", "group", "show", "--name", "demo-rg"])
        Executing: az group show --name demo-rg
        >>> result["success"]
        True
    """

    def __init__(
        self,
        show_progress: bool = True,
        timeout: int | None = None,
        console: Console | None = None,
    ):
        """Initialize Azure CLI executor.

        Args:
            show_progress: Whether to show a spinner while the command runs
            timeout: Command timeout in seconds (None = no timeout)
            console: Rich console for output (default: new Console)

        Raises:
            ValueError: If timeout is negative
        """
        if timeout is not None and timeout < 0:
            raise ValueError("Timeout must be non-negative")

        self.show_progress = show_progress
        self.timeout = timeout
        self.console = console or Console()
        self.sanitizer = CommandSanitizer()

    def execute(self, command: list[str]) -> dict[str, Any]:
        """Execute Azure CLI command with visibility.

        Args:
            command: Command to execute as list (e.g., ["az", "vm", "list"])

        Returns:
            Dictionary with execution results:
                - returncode: Exit code (0 = success, -1 = never completed)
                - stdout: Standard output
                - stderr: Standard error
                - success: Boolean success flag
                - command: Sanitized command string
                - elapsed: Seconds spent

        Raises:
            TypeError: If command is empty
            KeyboardInterrupt: If user cancels with Ctrl+C
        """
        if not command:
            raise TypeError("Command cannot be None or empty")

        display_command = " ".join(self.sanitizer.sanitize(command))
        text = Text("Executing: ", style="bold blue")
        text.append(display_command, style="cyan")
        self.console.print(text)
        logger.debug(f"Executing: {display_command}")

        start = time.time()
        try:
            if self.show_progress and TTYDetector.supports_interactive_features():
                with self.console.status("Waiting for Azure...", spinner="dots"):
                    result = self._run(command)
            else:
                result = self._run(command)

        except subprocess.TimeoutExpired:
            return self._failure(
                display_command, f"Command timeout after {self.timeout} seconds", start
            )

        except FileNotFoundError as e:
            return self._failure(
                display_command,
                f"Command not found: {e}. Install the Azure CLI and run 'az login'.",
                start,
            )

        except PermissionError as e:
            return self._failure(display_command, f"Permission denied: {e}", start)

        elapsed = time.time() - start
        logger.debug(f"Command completed in {elapsed:.1f}s (exit code: {result.returncode})")

        return {
            "returncode": result.returncode,
            "stdout": result.stdout,
            "stderr": self.sanitizer.redact_output(result.stderr or "", command),
            "success": result.returncode == 0,
            "command": display_command,
            "elapsed": elapsed,
        }

    def _run(self, command: list[str]) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=False,
        )

    @staticmethod
    def _failure(display_command: str, error: str, start: float) -> dict[str, Any]:
        return {
            "returncode": -1,
            "stdout": "",
            "stderr": error,
            "success": False,
            "command": display_command,
            "elapsed": time.time() - start,
        }


# ============================================================================
# Azure Client
# ============================================================================


class AzureClient(Protocol):
    """Provider operations a deployment needs."""

    def create_resource_group(self, name: str, location: str) -> dict[str, Any]: ...

    def create_vm(
        self,
        resource_group: str,
        name: str,
        image: str,
        size: str,
        admin_username: str,
        admin_password: str,
        custom_data: str,
    ) -> dict[str, Any]: ...

    def get_public_ip(self, resource_group: str, vm_name: str) -> str: ...

    def show_vm(self, resource_group: str, vm_name: str) -> dict[str, Any]: ...

    def create_nsg_rule(self, resource_group: str, nsg_name: str, rule: InboundRule) -> None: ...

    def delete_resource_group(self, name: str) -> None: ...


class AzureCLIClient:
    """AzureClient backed by the az command line.

    Assumes the user is already logged in (az login).
    """

    def __init__(self, timeout: int = 600, console: Console | None = None):
        """Initialize client.

        Args:
            timeout: Timeout in seconds for long calls (VM creation)
            console: Rich console for command display
        """
        self.timeout = timeout
        self.console = console or Console()

    def _executor(self, timeout: int) -> AzureCLIExecutor:
        return AzureCLIExecutor(show_progress=True, timeout=timeout, console=self.console)

    def _call(self, cmd: list[str], timeout: int = 60) -> str:
        """Run an az command and return stdout.

        Raises:
            ProviderCallError: If the command fails for any reason
        """
        result = self._executor(timeout).execute(cmd)
        if not result["success"]:
            stderr = (result["stderr"] or "").strip()
            raise ProviderCallError(
                f"Azure CLI call failed ({result['command']}): {stderr}",
                command=result["command"],
                returncode=result["returncode"],
                stderr=stderr,
            )
        return str(result["stdout"])

    def _call_json(self, cmd: list[str], timeout: int = 60) -> dict[str, Any]:
        stdout = self._call(cmd, timeout)
        try:
            data: dict[str, Any] = json.loads(stdout) if stdout.strip() else {}
        except json.JSONDecodeError as e:
            raise ProviderCallError(
                f"Failed to parse Azure CLI response from {cmd[0:3]}", stderr=stdout
            ) from e
        return data

    def create_resource_group(self, name: str, location: str) -> dict[str, Any]:
        logger.debug(f"Creating resource group: {name}")
        return self._call_json(
            ["az", "group", "create", "--name", name, "--location", location, "--output", "json"]
        )

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
        """Create the VM with password authentication and the boot payload.

        Returns once Azure has accepted and created the VM; the boot payload
        keeps running on the VM afterwards.
        """
        logger.debug(f"Creating VM: {name}")
        cmd = [
            "az",
            "vm",
            "create",
            "--resource-group",
            resource_group,
            "--name",
            name,
            "--image",
            image,
            "--size",
            size,
            "--admin-username",
            admin_username,
            "--admin-password",
            admin_password,
            "--custom-data",
            custom_data,
            "--output",
            "json",
        ]
        return self._call_json(cmd, timeout=self.timeout)

    def get_public_ip(self, resource_group: str, vm_name: str) -> str:
        """Single query for the VM's public IP. Empty string if none yet."""
        stdout = self._call(
            [
                "az",
                "vm",
                "show",
                "-d",
                "-g",
                resource_group,
                "-n",
                vm_name,
                "--query",
                "publicIps",
                "-o",
                "tsv",
            ]
        )
        return stdout.strip()

    def show_vm(self, resource_group: str, vm_name: str) -> dict[str, Any]:
        return self._call_json(
            ["az", "vm", "show", "-d", "-g", resource_group, "-n", vm_name, "--output", "json"]
        )

    def create_nsg_rule(self, resource_group: str, nsg_name: str, rule: InboundRule) -> None:
        self._call(
            [
                "az",
                "network",
                "nsg",
                "rule",
                "create",
                "-g",
                resource_group,
                "--nsg-name",
                nsg_name,
                "-n",
                rule.name,
                "--priority",
                str(rule.priority),
                "--access",
                rule.access,
                "--protocol",
                rule.protocol,
                "--destination-port-ranges",
                str(rule.port),
                "--output",
                "json",
            ]
        )

    def delete_resource_group(self, name: str) -> None:
        """Request deletion of a resource group without waiting for it."""
        logger.debug(f"Deleting resource group: {name}")
        self._call(["az", "group", "delete", "--name", name, "--yes", "--no-wait"])


def requery_ip_command(resource_group: str, vm_name: str) -> str:
    """Command an operator can run to ask for the public IP again."""
    return f"az vm show -d -g {resource_group} -n {vm_name} --query publicIps -o tsv"


__all__ = [
    "AzureCLIClient",
    "AzureCLIExecutor",
    "AzureClient",
    "CommandSanitizer",
    "TTYDetector",
    "requery_ip_command",
]
