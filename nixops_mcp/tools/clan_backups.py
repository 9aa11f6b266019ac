"""Clan backup tools."""

import re
from typing import Annotated

from ..config import TIMEOUT_INTERACTIVE, TIMEOUT_QUICK
from ..executor import run_command
from ..registry import registry
from ..validation import InvalidFormatError, validate_flake_ref, validate_machine_name
from .clan_machines import Flake
from .common import confirm_gate, confirmation_required, report

BACKUP_NAME_PATTERN = re.compile(r"^[\w.-]+$")

Provider = Annotated[str | None, "Backup provider, e.g. borgbackup"]


def validate_backup_name(name: str) -> str:
    if not BACKUP_NAME_PATTERN.fullmatch(name):
        raise InvalidFormatError("name", name, "non-empty alphanumeric with dashes, underscores, or dots")
    return name


@registry.tool(TIMEOUT_INTERACTIVE)
async def clan_backup_create(
    machine: Annotated[str, "Machine to back up"],
    provider: Provider = None,
    flake: Flake = ".",
) -> str:
    """Create a backup of a Clan machine."""
    validate_machine_name(machine, field="machine")
    validate_flake_ref(flake, field="flake")
    argv = ["clan", "backups", "create", machine, "--flake", flake]
    if provider is not None:
        validate_machine_name(provider, field="provider")
        argv.extend(["--provider", provider])

    result = await run_command(argv)
    return report(result, f"Backup created for machine '{machine}'.", "Backup creation failed:")


@registry.tool(TIMEOUT_QUICK, read_only=True)
async def clan_backup_list(
    machine: Annotated[str, "Machine whose backups to list"],
    provider: Provider = None,
    flake: Flake = ".",
) -> str:
    """List the backups available for a Clan machine."""
    validate_machine_name(machine, field="machine")
    validate_flake_ref(flake, field="flake")
    argv = ["clan", "backups", "list", machine, "--flake", flake]
    if provider is not None:
        validate_machine_name(provider, field="provider")
        argv.extend(["--provider", provider])

    result = await run_command(argv)
    if not result.success:
        return f"Failed to list backups:\n\n{result.output}"
    if not result.stdout.strip():
        return f"No backups found for machine '{machine}'."
    return f"Backups for machine '{machine}':\n\n{result.stdout}"


@registry.tool(TIMEOUT_INTERACTIVE, destructive=True)
async def clan_backup_restore(
    machine: Annotated[str, "Machine to restore"],
    provider: Annotated[str, "Backup provider holding the backup"],
    name: Annotated[str, "Backup name as shown by clan_backup_list"],
    service: Annotated[str | None, "Only restore this service's state"] = None,
    flake: Flake = ".",
    confirm: Annotated[bool, "Must be true to restore (overwrites current state)"] = False,
) -> str:
    """Restore a Clan machine from a backup. Overwrites the machine's current state."""
    validate_machine_name(machine, field="machine")
    validate_machine_name(provider, field="provider")
    validate_backup_name(name)
    validate_flake_ref(flake, field="flake")
    if service is not None:
        validate_machine_name(service, field="service")

    if not confirm_gate("clan_backup_restore", confirm, f"Restoring backup '{name}' for machine '{machine}'"):
        return confirmation_required(
            f"Restoring backup '{name}' overwrites the current state of machine '{machine}'!",
            ["Stop the affected services", "Replace their state with the backup contents"],
        )

    argv = ["clan", "backups", "restore", machine, provider, name, "--flake", flake]
    if service is not None:
        argv.extend(["--service", service])
    result = await run_command(argv)
    return report(result, f"Backup '{name}' restored for machine '{machine}'.", "Backup restore failed:")
