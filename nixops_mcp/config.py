"""Configuration constants and exception classes for NixOps-MCP server."""

import json
import logging
import os
import sys
from collections.abc import Mapping
from typing import Any

from fastmcp.exceptions import ToolError
from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND, ErrorData

from . import __version__

SERVER_NAME = "nixops-mcp"
SERVER_VERSION = __version__


ERROR_CATEGORIES = {
    INVALID_PARAMS: "INVALID_PARAMS",
    METHOD_NOT_FOUND: "METHOD_NOT_FOUND",
    INTERNAL_ERROR: "INTERNAL_ERROR",
}


class ToolCallError(ToolError, McpError):
    """Base class for errors reported to the MCP client.

    Carries the JSON-RPC ``ErrorData``. Being a FastMCP ``ToolError`` lets it
    pass the tool manager unwrapped; :meth:`client_text` is what a
    ``tools/call`` error result shows.
    """

    code = INTERNAL_ERROR

    def __init__(self, message: str, data: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorData(code=self.code, message=message, data=data))
        self.message = message
        self.data = data

    @property
    def category(self) -> str:
        return ERROR_CATEGORIES[self.code]

    def client_text(self) -> str:
        """Category and code, the message, then the structured detail as one JSON line."""
        text = f"{self.category} ({self.code}): {self.message}"
        if self.data:
            text += "\n" + json.dumps(self.data, sort_keys=True, default=str)
        return text


class InvalidParamsError(ToolCallError):
    """Arguments failed schema decoding or semantic validation."""

    code = INVALID_PARAMS


class ToolNotFoundError(ToolCallError):
    """No tool is registered under the requested name."""

    code = METHOD_NOT_FOUND

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}", {"tool": name})
        self.name = name


class InternalError(ToolCallError):
    """Tool execution failed on the server side."""


class OperationTimeoutError(InternalError):
    """The per-tool timeout fired before the body completed."""

    def __init__(self, operation: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Operation timed out after {timeout_seconds:g} seconds",
            {"operation": operation, "timeout_seconds": timeout_seconds},
        )
        self.operation = operation
        self.timeout_seconds = timeout_seconds


class OperationCancelledError(InternalError):
    """The client cancelled the request."""

    def __init__(self, message: str = "Operation cancelled by client") -> None:
        super().__init__(message)


class SpawnError(InternalError):
    """An external binary could not be started."""

    def __init__(self, program: str, reason: str) -> None:
        super().__init__(f"Failed to execute {program}: {reason}", {"program": program})
        self.program = program


class SubprocessError(InternalError):
    """An external binary ran and exited unsuccessfully."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message, {"exit_code": returncode})
        self.returncode = returncode
        self.stderr = stderr


# Timeout bands (seconds)
TIMEOUT_QUICK = 30
TIMEOUT_METADATA = 60
TIMEOUT_INTERACTIVE = 120
TIMEOUT_BUILD = 300
TIMEOUT_DEPLOY = 600

# Cache TTLs (seconds), keyed by cache name
CACHE_TTLS = {
    "locate": 5 * 60,
    "search": 10 * 60,
    "package_info": 30 * 60,
    "eval": 5 * 60,
    "prefetch": 24 * 60 * 60,
    "closure_size": 30 * 60,
    "derivation": 30 * 60,
}
DEFAULT_CACHE_CAPACITY = 1000

# Output shaping
MAX_OUTPUT_BYTES = 50 * 1024
# Audit parameters longer than this are recorded by length only
MAX_AUDIT_PARAM_CHARS = 200

# External flakes and URLs
PEXPECT_CLI = "nixpkgs#python3Packages.pexpect-cli"
PUEUE = "nixpkgs#pueue"
ONIX_CORE_FLAKE = "github:onixcomputer/onix-core"
NIXOS_OPTIONS_SEARCH = "https://search.nixos.org/options?channel=unstable&query="
PRE_COMMIT_HOOKS_NIX = "https://github.com/cachix/pre-commit-hooks.nix"
NIXOS_MARKER = "/etc/NIXOS"

# Logging
LOG_LEVEL_ENV = "NIXOPS_MCP_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LEVEL_ALIASES = {"warn": "warning", "trace": "debug", "off": "critical"}


def _parse_level(name: str) -> int | None:
    name = name.strip().lower()
    name = _LEVEL_ALIASES.get(name, name)
    level = getattr(logging, name.upper(), None)
    return level if isinstance(level, int) else None


def parse_log_filter(spec: str | None) -> tuple[int, int | None]:
    """Parse an env-filter style directive list.

    Accepts a bare level (``debug``) or a comma-separated list such as
    ``warn,nixops_mcp=debug``. Returns ``(root_level, package_level)`` where
    ``package_level`` is None when no directive targets this package.
    """
    root_level = logging.INFO
    package_level = None
    if not spec:
        return root_level, package_level

    for directive in spec.split(","):
        directive = directive.strip()
        if not directive:
            continue
        target, sep, level_name = directive.rpartition("=")
        level = _parse_level(level_name)
        if level is None:
            continue
        if not sep:
            root_level = level
        elif target.strip().replace("-", "_") == "nixops_mcp":
            package_level = level
    return root_level, package_level


def configure_logging(environ: Mapping[str, str] | None = None) -> None:
    """Send log records to stderr at the level selected by the environment."""
    environ = os.environ if environ is None else environ
    root_level, package_level = parse_log_filter(environ.get(LOG_LEVEL_ENV))
    logging.basicConfig(stream=sys.stderr, level=root_level, format=LOG_FORMAT)
    if package_level is not None:
        logging.getLogger("nixops_mcp").setLevel(package_level)
