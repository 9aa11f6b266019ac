"""Input validators guarding every argument that reaches an external command.

Validators are pure: they take a string, return the (possibly normalized)
value and raise a :class:`ValidationError` subclass on the first rule the
value breaks. Empty input is always reported first.
"""

import os
import re
from pathlib import Path, PurePosixPath

MAX_PACKAGE_NAME_LEN = 255
MAX_FLAKE_REF_LEN = 1000
MAX_PATH_LEN = 4096
MAX_EXPRESSION_LEN = 10000
MAX_COMMAND_LEN = 1000
MAX_MACHINE_NAME_LEN = 63
MAX_URL_LEN = 2048
MAX_SESSION_ID_LEN = 128

PACKAGE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_][a-zA-Z0-9_\-.]*$")
FLAKE_REF_PATTERN = re.compile(r"^[a-zA-Z0-9_\-.+/:@#]+$")
MACHINE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\-]+$")
SESSION_ID_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")
TASK_IDS_PATTERN = re.compile(r"^\s*[0-9]+\s*(,\s*[0-9]+\s*)*$")
OPTION_PATH_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_\-]*(\.[a-zA-Z_][a-zA-Z0-9_\-]*)*$")

SHELL_METACHARACTERS = (";", "|", "&", "$", "`", "\n", "\r", ">", "<", "(", ")", "{", "}", "[", "]", "!", "*", "?")

DANGEROUS_NIX_PATTERNS = (
    "__noChroot",
    "allowSubstitutes = false",
    "trustedUsers",
    "allowed-users",
    "builders",
    "substituters",
    "trusted-substituters",
    "system-features",
    "builtins.exec",
)

DANGEROUS_COMMAND_PATTERNS = ("rm -rf", "dd if=", "mkfs", "fdisk", "parted", ":(){ :|:& };:")

SENSITIVE_PATHS = (
    ("/etc/shadow", re.compile(r"^/etc/shadow")),
    ("/etc/passwd", re.compile(r"^/etc/passwd")),
    ("/root/.ssh", re.compile(r"^/root/\.ssh(/|$)")),
    ("/home/*/.ssh", re.compile(r"^/home/[^/]+/\.ssh(/|$)")),
    ("/var/lib/private", re.compile(r"^/var/lib/private(/|$)")),
    ("/run/secrets", re.compile(r"^/run/secrets(/|$)")),
)


class ValidationError(ValueError):
    """Base class for rejected tool arguments."""

    def __init__(self, field: str, value: str = "") -> None:
        self.field = field
        self.value = value
        super().__init__(self.render())

    def render(self) -> str:
        return f"Field '{self.field}' is invalid"

    @property
    def reason(self) -> str:
        return self.render()


class EmptyFieldError(ValidationError):
    def render(self) -> str:
        return f"Field '{self.field}' cannot be empty"


class InvalidCharactersError(ValidationError):
    def render(self) -> str:
        return f"Field '{self.field}' contains invalid characters: '{self.value}'"


class PathTraversalError(ValidationError):
    def render(self) -> str:
        return f"Field '{self.field}' contains path traversal attempt: '{self.value}'"


class TooLongError(ValidationError):
    def __init__(self, field: str, value: str, max_length: int) -> None:
        self.max_length = max_length
        self.actual = len(value)
        super().__init__(field, value)

    def render(self) -> str:
        return f"Field '{self.field}' too long: {self.actual} characters (max: {self.max_length})"


class InvalidFormatError(ValidationError):
    def __init__(self, field: str, value: str, expected: str) -> None:
        self.expected = expected
        super().__init__(field, value)

    def render(self) -> str:
        return f"Field '{self.field}' has invalid format. Expected: {self.expected}, got: '{self.value}'"


class SuspiciousInputError(ValidationError):
    def __init__(self, field: str, value: str, reason: str) -> None:
        self.suspicion = reason
        super().__init__(field, value)

    def render(self) -> str:
        return f"Field '{self.field}' is suspicious: {self.suspicion}"


def _check_basics(value: str, field: str, max_length: int) -> None:
    if not value:
        raise EmptyFieldError(field)
    if len(value) > max_length:
        raise TooLongError(field, value, max_length)


def _check_null_byte(value: str, field: str) -> None:
    if "\0" in value:
        raise SuspiciousInputError(field, value, "contains null byte")


def validate_package_name(name: str, field: str = "package_name") -> str:
    """Validate a nixpkgs attribute-style package name."""
    _check_basics(name, field, MAX_PACKAGE_NAME_LEN)
    if ".." in name or "/" in name or "\\" in name:
        raise PathTraversalError(field, name)
    if not PACKAGE_NAME_PATTERN.fullmatch(name):
        raise InvalidFormatError(field, name, "alphanumeric, underscore, hyphen, dot only")
    if name.startswith(".") or name.endswith("."):
        raise SuspiciousInputError(field, name, "cannot start or end with dot")
    return name


def validate_flake_ref(flake_ref: str, field: str = "flake_ref") -> str:
    """Validate a flake reference or installable (path, URL, registry name, ``ref#attr``)."""
    _check_basics(flake_ref, field, MAX_FLAKE_REF_LEN)
    _check_null_byte(flake_ref, field)
    for metachar in SHELL_METACHARACTERS:
        if metachar in flake_ref:
            raise SuspiciousInputError(field, flake_ref, f"contains shell metacharacter: {metachar!r}")
    if not FLAKE_REF_PATTERN.fullmatch(flake_ref):
        raise InvalidFormatError(field, flake_ref, "valid flake reference (path, URL, or registry)")
    return flake_ref


def _sensitive_prefix(path: str) -> str | None:
    for label, pattern in SENSITIVE_PATHS:
        if pattern.match(path):
            return label
    return None


def validate_path(path: str, field: str = "path") -> str:
    """Validate a filesystem path.

    Existing paths are returned in canonical form with symlinks resolved;
    paths that do not exist yet are returned unchanged.
    """
    _check_basics(path, field, MAX_PATH_LEN)
    _check_null_byte(path, field)
    if ".." in PurePosixPath(path).parts:
        raise PathTraversalError(field, path)

    prefix = _sensitive_prefix(path)
    if prefix:
        raise SuspiciousInputError(field, path, f"access to sensitive path: {prefix}")

    if not os.path.lexists(path):
        return path
    try:
        canonical = str(Path(path).resolve(strict=True))
    except (OSError, RuntimeError):
        raise SuspiciousInputError(field, path, "cannot canonicalize path (broken symlink?)") from None

    # a symlink may point somewhere the literal path did not reveal
    prefix = _sensitive_prefix(canonical)
    if prefix:
        raise SuspiciousInputError(field, path, f"access to sensitive path: {prefix}")
    return canonical


def validate_nix_expression(expr: str, field: str = "expression") -> str:
    """Reject expressions that try to escape the sandbox or reconfigure the daemon."""
    _check_basics(expr, field, MAX_EXPRESSION_LEN)
    _check_null_byte(expr, field)
    for pattern in DANGEROUS_NIX_PATTERNS:
        if pattern in expr:
            raise SuspiciousInputError(field, expr, f"contains dangerous pattern: {pattern}")
    if "$(" in expr or "`" in expr:
        raise SuspiciousInputError(field, expr, "contains shell command substitution")
    return expr


def validate_command(command: str, field: str = "command") -> str:
    """Validate a user command line. Destructive patterns are reported, not rejected."""
    _check_basics(command, field, MAX_COMMAND_LEN)
    _check_null_byte(command, field)
    return command


def find_dangerous_patterns(command: str) -> list[str]:
    return [pattern for pattern in DANGEROUS_COMMAND_PATTERNS if pattern in command]


def validate_machine_name(name: str, field: str = "machine_name") -> str:
    """Validate a Clan machine name (hostname rules)."""
    _check_basics(name, field, MAX_MACHINE_NAME_LEN)
    if not MACHINE_NAME_PATTERN.fullmatch(name):
        raise InvalidFormatError(field, name, "alphanumeric, underscore, hyphen only")
    if name.startswith("-") or name.endswith("-"):
        raise SuspiciousInputError(field, name, "cannot start or end with hyphen")
    return name


def validate_url(url: str, field: str = "url") -> str:
    _check_basics(url, field, MAX_URL_LEN)
    if not url.startswith(("http://", "https://", "ftp://")):
        raise InvalidFormatError(field, url, "http://, https://, or ftp:// URL")
    _check_null_byte(url, field)
    if " " in url:
        raise SuspiciousInputError(field, url, "contains unencoded space")
    return url


def validate_session_id(session_id: str, field: str = "session_id") -> str:
    _check_basics(session_id, field, MAX_SESSION_ID_LEN)
    if not SESSION_ID_PATTERN.fullmatch(session_id):
        raise InvalidFormatError(field, session_id, "alphanumeric session ID")
    return session_id


def validate_task_ids(task_ids: str, field: str = "task_ids") -> list[str]:
    """Split a comma-separated pueue task id list."""
    _check_basics(task_ids, field, MAX_COMMAND_LEN)
    _check_null_byte(task_ids, field)
    if not TASK_IDS_PATTERN.fullmatch(task_ids):
        raise InvalidFormatError(field, task_ids, "comma-separated numeric task IDs")
    return [task_id.strip() for task_id in task_ids.split(",")]


def validate_text(value: str, field: str, max_length: int = MAX_COMMAND_LEN) -> str:
    """Validate free text that is passed as a single argv element."""
    _check_basics(value, field, max_length)
    _check_null_byte(value, field)
    return value


def validate_option_path(path: str, field: str = "path") -> str:
    """Validate a dotted NixOS option path such as ``services.nginx.enable``."""
    _check_basics(path, field, MAX_COMMAND_LEN)
    if not OPTION_PATH_PATTERN.fullmatch(path):
        raise InvalidFormatError(field, path, "dotted option path, e.g. services.nginx.enable")
    return path
