"""Static reference tools. They spawn nothing but still run inside the envelope."""

from typing import Annotated

from ..config import TIMEOUT_QUICK
from ..reference import (
    ECOSYSTEM_OVERVIEW,
    ECOSYSTEM_TOOL_ALIASES,
    ECOSYSTEM_TOOLS,
    NIX_COMMAND_HELP,
    NIX_COMMAND_OVERVIEW,
)
from ..registry import registry
from ..validation import validate_text


@registry.tool(TIMEOUT_QUICK, read_only=True, idempotent=True)
async def nix_command_help(
    command: Annotated[str | None, "Nix command to explain: develop, build, flake, shell, nix-shell or run"] = None,
) -> str:
    """Get help and examples for common Nix commands."""
    if command is None:
        return NIX_COMMAND_OVERVIEW
    validate_text(command, "command")
    return NIX_COMMAND_HELP.get(command, NIX_COMMAND_OVERVIEW)


@registry.tool(TIMEOUT_QUICK, read_only=True, idempotent=True)
async def ecosystem_tools(
    tool: Annotated[str | None, "Tool to describe, e.g. comma, disko or nixos-anywhere"] = None,
) -> str:
    """Get information about useful Nix ecosystem tools and utilities."""
    if tool is None:
        return ECOSYSTEM_OVERVIEW
    validate_text(tool, "tool")
    return ECOSYSTEM_TOOLS.get(ECOSYSTEM_TOOL_ALIASES.get(tool, tool), ECOSYSTEM_OVERVIEW)
