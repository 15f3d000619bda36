"""Exception hierarchy for fairdeploy.

Every error is terminal for a deployment run. The CLI maps each type to a
message and an exit code.
"""


class FairdeployError(Exception):
    """Base exception for all fairdeploy errors."""

    pass


class ConfigError(FairdeployError):
    """Raised when configuration cannot be loaded or is invalid."""

    pass


class ValidationError(FairdeployError):
    """Raised when a local parameter check fails, before any Azure call."""

    pass


class PasswordPolicyError(ValidationError):
    """Raised when the VM admin password does not meet the complexity policy."""

    def __init__(self, violations: list[str]):
        self.violations = violations
        super().__init__(
            "VM admin password does not meet Azure complexity requirements: "
            + "; ".join(violations)
        )


class ProviderCallError(FairdeployError):
    """Raised when an Azure CLI call fails.

    Attributes:
        command: Sanitized command line that failed
        returncode: Exit code of the az process (-1 if it never ran)
        stderr: Error output from the Azure CLI
    """

    def __init__(self, message: str, command: str = "", returncode: int = 1, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class ProvisioningIncomplete(FairdeployError):
    """Raised when the VM exists but no public IP could be read yet.

    Attributes:
        requery_command: Command the operator can run to ask again
    """

    def __init__(self, message: str, requery_command: str):
        self.requery_command = requery_command
        super().__init__(message)


class BootPayloadError(FairdeployError):
    """Failure inside the VM's first-boot script.

    Never raised locally: the boot payload runs out-of-band, so clone or
    compose failures only show up in /var/log/cloud-init-output.log on the VM.
    """

    pass


__all__ = [
    "BootPayloadError",
    "ConfigError",
    "FairdeployError",
    "PasswordPolicyError",
    "ProviderCallError",
    "ProvisioningIncomplete",
    "ValidationError",
]
