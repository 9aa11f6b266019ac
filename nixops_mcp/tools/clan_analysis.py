"""Clan flake creation, secrets and infrastructure analysis tools."""

from typing import Annotated

from ..config import ONIX_CORE_FLAKE, TIMEOUT_METADATA, TIMEOUT_QUICK
from ..executor import CommandResult, run_command
from ..reference import CLAN_HELP
from ..registry import registry
from ..validation import validate_flake_ref, validate_path
from .clan_machines import Flake
from .common import report


@registry.tool(TIMEOUT_METADATA)
async def clan_flake_create(
    directory: Annotated[str, "Directory to create the Clan flake in"],
    template: Annotated[str | None, "Clan template to use"] = None,
) -> str:
    """Create a new Clan flake."""
    directory = validate_path(directory, field="directory")
    argv = ["clan", "flakes", "create", directory]
    if template is not None:
        validate_flake_ref(template, field="template")
        argv.extend(["--template", template])

    result = await run_command(argv)
    return report(result, f"Clan flake created in '{directory}'.", "Failed to create Clan flake:")


@registry.tool(TIMEOUT_QUICK, read_only=True)
async def clan_secrets_list(flake: Flake = ".") -> str:
    """List the secrets managed by a Clan flake."""
    validate_flake_ref(flake, field="flake")
    result = await run_command(["clan", "secrets", "list", "--flake", flake])
    if not result.success:
        return f"Failed to list secrets:\n\n{result.output}"
    if not result.stdout.strip():
        return "No secrets configured."
    return f"Clan Secrets:\n\n{result.stdout}"


async def run_analysis_app(app: str, flake: str) -> CommandResult:
    """Run the flake's own analysis app, falling back to the onix-core one."""
    validate_flake_ref(flake, field="flake")
    local = await run_command(["nix", "run", f".#{app}"], cwd=flake)
    if local.success:
        return local
    return await run_command(["nix", "run", f"{ONIX_CORE_FLAKE}#{app}"], cwd=flake)


def analysis_report(result: CommandResult, title: str, failure: str) -> str:
    if not result.success:
        return f"{failure}\n\nError:\n{result.output}"
    return f"{title}\n\n{result.output}"


@registry.tool(TIMEOUT_METADATA, read_only=True)
async def clan_analyze_secrets(flake: Flake = ".") -> str:
    """Show which machines and users can read each Clan secret."""
    result = await run_analysis_app("acl", flake)
    return analysis_report(result, "Clan Secret (ACL) Ownership Analysis:", "ACL analysis failed.")


@registry.tool(TIMEOUT_METADATA, read_only=True)
async def clan_analyze_vars(flake: Flake = ".") -> str:
    """Show which machines own each generated Clan var."""
    result = await run_analysis_app("vars", flake)
    return analysis_report(result, "Clan Vars Ownership Analysis:", "Vars analysis failed.")


@registry.tool(TIMEOUT_METADATA, read_only=True)
async def clan_analyze_tags(flake: Flake = ".") -> str:
    """Show the tags assigned to each Clan machine."""
    result = await run_analysis_app("tags", flake)
    return analysis_report(result, "Clan Machine Tags Analysis:", "Tags analysis failed.")


@registry.tool(TIMEOUT_METADATA, read_only=True)
async def clan_analyze_roster(flake: Flake = ".") -> str:
    """Show the users configured across Clan machines."""
    result = await run_analysis_app("roster", flake)
    return analysis_report(result, "Clan User Roster Analysis:", "Roster analysis failed.")


@registry.tool(TIMEOUT_QUICK, read_only=True, idempotent=True)
async def clan_help() -> str:
    """Get an overview of Clan and the Clan tools this server offers."""
    return CLAN_HELP
