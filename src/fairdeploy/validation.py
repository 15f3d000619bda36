"""Local parameter validation.

Checks everything that can be checked before an Azure call is made:
- VM admin password complexity (Azure's documented policy)
- Resource and VM names
- Admin username, repository URL and clone directory that end up inside
  the boot payload

Philosophy:
- Fail fast: reject bad input before any billable resource exists
- Clear error messages listing every unmet requirement
- Zero dependencies on other fairdeploy modules except exceptions

Azure may still reject a password for reasons not checked here (for
example a forbidden character). That surfaces as a ProviderCallError from
the VM create call, not as a local validation failure.
"""

import re

from fairdeploy.exceptions import PasswordPolicyError, ValidationError

PASSWORD_MIN_LENGTH = 12
PASSWORD_MAX_LENGTH = 123

# Azure rejects these even though they are "special" characters
FORBIDDEN_SPECIAL_CHARS = {"\\", "-"}

# Linux usernames Azure accepts for the admin account
_USERNAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")
_RESOURCE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.\-]+$")
_CLONE_DIR_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")
_REPO_URL_PATTERN = re.compile(r"^(https://|git@)[A-Za-z0-9._~:/?#@!$&'()*+,;=%\-]+$")


def check_admin_password(password: str, require_special_char: bool = False) -> list[str]:
    """Return the list of complexity requirements the password fails.

    Args:
        password: Candidate admin password
        require_special_char: Also require a special character (not \\ or -)

    Returns:
        Human-readable violations, empty if the password is acceptable
    """
    violations: list[str] = []

    if len(password) < PASSWORD_MIN_LENGTH:
        violations.append(f"must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        violations.append(f"must be at most {PASSWORD_MAX_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        violations.append("must include an uppercase letter")
    if not re.search(r"[a-z]", password):
        violations.append("must include a lowercase letter")
    if not re.search(r"[0-9]", password):
        violations.append("must include a digit")

    if require_special_char:
        specials = [c for c in password if not c.isalnum() and not c.isspace()]
        if not any(c not in FORBIDDEN_SPECIAL_CHARS for c in specials):
            violations.append("must include a special character other than \\ or -")

    return violations


def validate_admin_password(password: str, require_special_char: bool = False) -> str:
    """Validate the VM admin password against Azure's complexity policy.

    Length 12-123 with an uppercase letter, a lowercase letter and a digit.
    The special-character rule is only enforced when requested.

    Args:
        password: Candidate admin password
        require_special_char: Also require a special character (not \\ or -)

    Returns:
        The password, unchanged

    Raises:
        PasswordPolicyError: If any requirement is not met

    Example:
        >>> validate_admin_password("YourComplexPassword123!")
        'YourComplexPassword123!'
    """
    violations = check_admin_password(password, require_special_char=require_special_char)
    if violations:
        raise PasswordPolicyError(violations)
    return password


def validate_resource_name(name: str, resource_type: str, max_length: int = 64) -> str:
    """Validate an Azure resource name before it is passed to the CLI.

    Raises:
        ValidationError: If the name is empty, too long or has unsafe characters
    """
    if not name:
        raise ValidationError(f"{resource_type} name must be a non-empty string")
    if not _RESOURCE_NAME_PATTERN.match(name):
        raise ValidationError(
            f"{resource_type} name '{name}' must contain only letters, numbers, "
            "hyphens, underscores and periods"
        )
    if len(name) > max_length:
        raise ValidationError(
            f"{resource_type} name too long: {len(name)} characters (max: {max_length})"
        )
    return name


def validate_admin_username(username: str) -> str:
    """Validate the VM admin username.

    The username becomes part of /home/<user> paths in the boot payload.

    Raises:
        ValidationError: If the username is not a valid Linux account name
    """
    if not username or not _USERNAME_PATTERN.match(username):
        raise ValidationError(
            f"Invalid admin username '{username}': use lowercase letters, digits, "
            "underscores and hyphens (max 32 characters, not starting with a digit)"
        )
    if username in {"root", "admin", "administrator"}:
        raise ValidationError(f"Admin username '{username}' is reserved by Azure")
    return username


def validate_repo_url(repo_url: str) -> str:
    """Validate the deployment repository URL.

    Only https:// and git@ URLs without whitespace or quoting characters
    are accepted, since the URL is interpolated into a shell script.

    Raises:
        ValidationError: If the URL is not an accepted git URL
    """
    if not repo_url or not _REPO_URL_PATTERN.match(repo_url):
        raise ValidationError(f"Invalid repository URL: {repo_url!r}")
    if any(c in repo_url for c in ("`", "$", ";", "|", "&", "'", '"', "(", ")")):
        raise ValidationError(f"Repository URL contains unsafe characters: {repo_url!r}")
    return repo_url


def validate_clone_dir(clone_dir: str) -> str:
    """Validate the directory name git clone will create.

    Raises:
        ValidationError: If the name has path separators or shell metacharacters
    """
    if not clone_dir or clone_dir in {".", ".."} or not _CLONE_DIR_PATTERN.match(clone_dir):
        raise ValidationError(f"Invalid clone directory name: {clone_dir!r}")
    return clone_dir


def repo_dir_name(repo_url: str) -> str:
    """Directory name git clone creates for a repository URL.

    Example:
        >>> repo_dir_name("https://example.com/repo.git")
        'repo'
    """
    name = repo_url.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name


__all__ = [
    "PASSWORD_MAX_LENGTH",
    "PASSWORD_MIN_LENGTH",
    "check_admin_password",
    "repo_dir_name",
    "validate_admin_password",
    "validate_admin_username",
    "validate_clone_dir",
    "validate_repo_url",
    "validate_resource_name",
]
