"""NixOps-MCP server entry point.

Importing the tool modules registers their tools on the shared FastMCP
instance. This module adds the static resources, resource templates and
prompts, and runs the stdio transport.
"""

import json
from collections.abc import Callable

from .config import InvalidParamsError, configure_logging
from .executor import run_command
from .reference import COMMON_COMMANDS, ECOSYSTEM_OVERVIEW, FLAKE_TEMPLATE
from .registry import mcp, registry
from .tools import (  # noqa: F401
    build,
    clan_analysis,
    clan_backups,
    clan_machines,
    develop,
    flakes,
    info,
    packages,
    pexpect,
    precommit,
    pueue,
    quality,
)
from .tools.build import format_derivation
from .validation import (
    ValidationError,
    validate_flake_ref,
    validate_option_path,
    validate_package_name,
)

PACKAGE_RESOURCE_LIMIT = 5


def checked(validator: Callable[..., str], value: str, field: str) -> str:
    """Apply a tool validator to a resource template argument."""
    try:
        return validator(value, field=field)
    except ValidationError as e:
        registry.audit.validation_failed(e.field, e.value, e.reason)
        raise InvalidParamsError(str(e), {"field": e.field, "reason": e.reason}) from e


# Static resources


@mcp.resource("nix://commands/common", name="Common Nix Commands", mime_type="text/plain")
def common_commands() -> str:
    """Quick reference of the most used Nix commands."""
    return COMMON_COMMANDS


@mcp.resource("nix://ecosystem/tools", name="Ecosystem Tools", mime_type="text/plain")
def ecosystem_overview() -> str:
    """Overview of useful tools from the Nix ecosystem."""
    return ECOSYSTEM_OVERVIEW


@mcp.resource("nix://flake/template", name="Flake Template", mime_type="text/plain")
def flake_template() -> str:
    """Starting point for a new flake.nix."""
    return FLAKE_TEMPLATE


# Resource templates


@mcp.resource("nix://package/{name}", name="Package Information", mime_type="text/plain")
async def package_resource(name: str) -> str:
    """Get detailed information about any Nix package by name (e.g., nix://package/ripgrep)."""
    checked(validate_package_name, name, "name")
    result = await run_command(["nix", "search", "nixpkgs", name, "--json"])
    if not result.success:
        return f"Failed to search for package '{name}'"
    try:
        found = json.loads(result.stdout)
    except json.JSONDecodeError:
        return f"No results found for package '{name}'"
    if not isinstance(found, dict):
        return f"No package found matching '{name}'"

    text = f"Package Information: {name}\n\n"
    for pkg_path, entry in list(found.items())[:PACKAGE_RESOURCE_LIMIT]:
        entry = entry if isinstance(entry, dict) else {}
        text += f"Package: {pkg_path}\n"
        if isinstance(entry.get("description"), str):
            text += f"Description: {entry['description']}\n"
        if isinstance(entry.get("version"), str):
            text += f"Version: {entry['version']}\n"
        text += "\n"
    return text


@mcp.resource("nix://flake/{ref*}/show", name="Flake Outputs", mime_type="text/plain")
async def flake_outputs_resource(ref: str) -> str:
    """Show outputs for any flake reference (e.g., nix://flake/github:owner/repo/show)."""
    checked(validate_flake_ref, ref, "ref")
    result = await run_command(["nix", "flake", "show", ref, "--json"])
    if not result.success:
        return f"Failed to show flake '{ref}': {result.stderr}"
    return f"Flake outputs for: {ref}\n\n{result.stdout}"


@mcp.resource("nix://option/{path}", name="NixOS Option", mime_type="text/plain")
async def option_resource(path: str) -> str:
    """Look up NixOS option documentation by path (e.g., nix://option/services.nginx.enable)."""
    checked(validate_option_path, path, "path")
    expression = f'(import <nixpkgs/nixos> {{}}).options.{path}.description or "Option not found"'
    result = await run_command(["nix", "eval", "--expr", expression])
    if not result.success:
        return f"Option '{path}' not found or not available"
    return f"NixOS Option: {path}\n\n{result.stdout}"


@mcp.resource("nix://derivation/{package}", name="Derivation", mime_type="text/plain")
async def derivation_resource(package: str) -> str:
    """Show derivation details for a package (e.g., nix://derivation/nixpkgs#hello)."""
    checked(validate_flake_ref, package, "package")
    result = await run_command(["nix", "derivation", "show", package])
    if not result.success:
        return f"Failed to get derivation for '{package}': {result.stderr}"
    return format_derivation(result.stdout)


# Prompts


@mcp.prompt()
def generate_flake(project_type: str = "generic") -> str:
    """Generate a flake.nix for a project type."""
    return (
        f"Generate a Nix flake.nix file for a {project_type} project. "
        "Include appropriate buildInputs, development shell, and package definition."
    )


@mcp.prompt()
def setup_dev_environment(
    project_type: str,
    dependencies: list[str] | None = None,
    use_flakes: bool = True,
) -> str:
    """Set up a Nix development environment for a project."""
    deps = ", ".join(dependencies) if dependencies else "none specified"
    return (
        f"I need to set up a Nix development environment for a {project_type} project.\n"
        f"Additional dependencies: {deps}\n"
        f"Use flakes: {str(use_flakes).lower()}\n\n"
        "Please provide:\n"
        "1. A complete flake.nix (if using flakes) or shell.nix file\n"
        "2. Explanation of the key components\n"
        "3. Commands to enter and use the development environment\n"
        "4. Best practices for this project type with Nix"
    )


@mcp.prompt()
def troubleshoot_build(package: str, error_message: str | None = None) -> str:
    """Diagnose a failing Nix build."""
    error_part = f"\n\nError message:\n{error_message}" if error_message else ""
    return (
        f"I'm having trouble building: {package}{error_part}\n\n"
        "Please help me:\n"
        "1. Identify the root cause of the build failure\n"
        "2. Suggest specific debugging commands to run (like nix log, nix why-depends, etc.)\n"
        "3. Provide potential solutions or workarounds\n"
        "4. Explain common patterns that might cause this issue\n"
        "5. Recommend preventive measures for the future"
    )


@mcp.prompt()
def migrate_to_flakes(current_setup: str, project_type: str | None = None) -> str:
    """Plan a migration from channels or shell.nix to flakes."""
    project_part = f" for a {project_type} project" if project_type else ""
    return (
        f"I want to migrate to Nix flakes{project_part}.\n"
        f"Current setup: {current_setup}\n\n"
        "Please provide:\n"
        "1. Step-by-step migration plan\n"
        "2. Example flake.nix based on my current setup\n"
        "3. How to handle inputs and lock files\n"
        "4. Common pitfalls to avoid\n"
        "5. Benefits I'll gain from using flakes\n"
        "6. Backward compatibility considerations"
    )


@mcp.prompt()
def optimize_closure(package: str, current_size: str | None = None, target: str | None = None) -> str:
    """Reduce the closure size of a package."""
    text = f"I need to optimize the closure size for: {package}"
    if current_size:
        text += f"\nCurrent closure size: {current_size}"
    if target:
        text += f"\nTarget: {target}"
    return text + (
        "\n\nPlease help me:\n"
        "1. Analyze dependency tree to identify large dependencies\n"
        "2. Suggest specific packages or features to remove or replace\n"
        "3. Provide Nix expressions to create minimal variants\n"
        "4. Recommend build flags or overrides to reduce size\n"
        "5. Explain trade-offs between size and functionality\n"
        "6. Show how to measure and verify improvements"
    )


def main() -> None:
    """Run the MCP server."""
    configure_logging()
    try:
        mcp.run()
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
