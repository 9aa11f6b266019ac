"""Clan machine lifecycle tools.

Clan command failures come back as text, not errors: the clan CLI prints
diagnostics the caller needs to see to fix the inventory.
"""

from typing import Annotated

from ..config import TIMEOUT_BUILD, TIMEOUT_DEPLOY, TIMEOUT_INTERACTIVE, TIMEOUT_METADATA, TIMEOUT_QUICK
from ..executor import is_available, run_command
from ..registry import registry
from ..validation import validate_flake_ref, validate_machine_name
from .common import confirm_gate, confirmation_required, report

Flake = Annotated[str, "Clan flake directory or reference (default: current directory)"]


@registry.tool(TIMEOUT_METADATA)
async def clan_machine_create(
    name: Annotated[str, "Name of the new machine"],
    template: Annotated[str, "Machine template to instantiate"] = "new-machine",
    target_host: Annotated[str | None, "SSH target, e.g. root@192.168.1.10"] = None,
    flake: Flake = ".",
) -> str:
    """Create a new Clan machine from a template."""
    validate_machine_name(name, field="name")
    validate_flake_ref(template, field="template")
    validate_flake_ref(flake, field="flake")
    argv = ["clan", "machines", "create", name, "-t", template, "--flake", flake]
    if target_host is not None:
        validate_flake_ref(target_host, field="target_host")
        argv.extend(["--target-host", target_host])

    result = await run_command(argv)
    return report(result, f"Successfully created machine '{name}'.", f"Failed to create machine '{name}':")


@registry.tool(TIMEOUT_QUICK, read_only=True)
async def clan_machine_list(flake: Flake = ".") -> str:
    """List the machines defined in a Clan flake."""
    validate_flake_ref(flake, field="flake")
    result = await run_command(["clan", "machines", "list", "--flake", flake])
    if not result.success:
        return f"Failed to list machines:\n\n{result.output}"
    if not result.stdout.strip():
        return "No machines configured in this Clan flake."
    return f"Clan Machines:\n\n{result.stdout}"


@registry.tool(TIMEOUT_BUILD, destructive=True)
async def clan_machine_update(
    machines: Annotated[list[str] | None, "Machines to update (default: all machines)"] = None,
    flake: Flake = ".",
    confirm: Annotated[bool, "Must be true to deploy"] = False,
) -> str:
    """Deploy the current configuration to Clan machines."""
    validate_flake_ref(flake, field="flake")
    machines = machines or []
    for machine in machines:
        validate_machine_name(machine, field="machines")
    description = ", ".join(machines) if machines else "all machines"

    if not confirm_gate("clan_machine_update", confirm, f"Updating machines: {description}"):
        return confirmation_required(
            f"Updating {description} will redeploy their NixOS configuration!",
            ["Build the new system closures", "Copy them to the target hosts", "Activate them, restarting services"],
        )

    result = await run_command(["clan", "machines", "update", "--flake", flake, *machines])
    return report(result, "Machine update completed.", "Machine update failed:")


@registry.tool(TIMEOUT_METADATA, destructive=True)
async def clan_machine_delete(
    name: Annotated[str, "Machine to delete"],
    flake: Flake = ".",
    confirm: Annotated[bool, "Must be true to delete"] = False,
) -> str:
    """Delete a machine from a Clan flake."""
    validate_machine_name(name, field="name")
    validate_flake_ref(flake, field="flake")

    if not confirm_gate("clan_machine_delete", confirm, f"Deleting machine: {name}"):
        return confirmation_required(
            f"Deleting machine '{name}' removes it from the Clan inventory!",
            ["Remove the machine configuration", "Remove its secrets and generated vars"],
        )

    result = await run_command(["clan", "machines", "delete", name, "--flake", flake])
    return report(result, f"Successfully deleted machine '{name}'.", f"Failed to delete machine '{name}':")


@registry.tool(TIMEOUT_DEPLOY, destructive=True)
async def clan_machine_install(
    machine: Annotated[str, "Machine to install"],
    target_host: Annotated[str, "SSH target, e.g. root@192.168.1.10"],
    flake: Flake = ".",
    confirm: Annotated[bool, "Must be true to install (overwrites the target disk)"] = False,
) -> str:
    """Install a Clan machine to a target host via SSH. Overwrites the target disk."""
    validate_machine_name(machine, field="machine")
    validate_flake_ref(target_host, field="target_host")
    validate_flake_ref(flake, field="flake")

    reason = f"Installing machine '{machine}' to '{target_host}'"
    if not confirm_gate("clan_machine_install", confirm, reason):
        return confirmation_required(
            f"Installing machine '{machine}' to '{target_host}' will OVERWRITE THE DISK!",
            ["Partition and format the target disk", "Install NixOS", "Deploy the Clan configuration"],
        )

    result = await run_command(["clan", "machines", "install", machine, target_host, "--flake", flake])
    return report(
        result,
        f"Machine '{machine}' successfully installed to '{target_host}'.",
        "Machine installation failed:",
    )


@registry.tool(TIMEOUT_BUILD)
async def clan_machine_build(
    machine: Annotated[str, "Machine whose configuration to build"],
    flake: Flake = ".",
    use_nom: Annotated[bool, "Use nix-output-monitor when it is installed"] = False,
) -> str:
    """Build a Clan machine configuration locally without deploying it."""
    validate_machine_name(machine, field="machine")
    validate_flake_ref(flake, field="flake")
    target = f".#nixosConfigurations.{machine}.config.system.build.toplevel"
    program = "nom" if use_nom and is_available("nom") else "nix"

    result = await run_command([program, "build", target], cwd=flake)
    if not result.success:
        return f"Build failed for machine '{machine}':\n\n{result.output}"
    return (
        f"Successfully built machine '{machine}' configuration.\n\n{result.output}\n\n"
        "The build result is in ./result/"
    )


@registry.tool(TIMEOUT_INTERACTIVE)
async def clan_vm_create(
    machine: Annotated[str, "Machine to create a VM for"],
    flake: Flake = ".",
) -> str:
    """Create a VM configuration for a Clan machine."""
    validate_machine_name(machine, field="machine")
    validate_flake_ref(flake, field="flake")
    result = await run_command(["clan", "vms", "create", machine, "--flake", flake])
    if not result.success:
        return f"VM creation failed:\n\n{result.output}"
    return (
        f"VM created for machine '{machine}'.\n\n{result.output}\n\n"
        f"Note: This creates a VM configuration. Use 'clan vms run {machine}' to start it."
    )
