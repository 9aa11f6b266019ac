"""Nix build and derivation analysis tools."""

import json
from typing import Annotated

from ..caches import cached
from ..config import TIMEOUT_BUILD, TIMEOUT_METADATA, TIMEOUT_QUICK
from ..executor import is_available, raise_for_status, run_command, to_result
from ..registry import registry
from ..utils import build_drv_path, build_output_path, format_closure_size, truncate_output
from ..validation import validate_flake_ref, validate_machine_name

DERIVATION_ENV_KEYS = ("name", "version", "src", "builder", "system", "outputs")


def format_build_result(stdout: str) -> str:
    try:
        built = json.loads(stdout)
    except json.JSONDecodeError:
        return f"Build completed!\n\n{stdout}"

    lines = ["Build completed successfully!", ""]
    for item in built if isinstance(built, list) else []:
        if not isinstance(item, dict):
            continue
        if isinstance(item.get("drvPath"), str):
            lines.append(f"Derivation: {item['drvPath']}")
        outputs = item.get("outputs")
        if isinstance(outputs, dict):
            lines.append("Outputs:")
            lines.extend(f"  {name}: {path}" for name, path in outputs.items() if isinstance(path, str))
    lines.extend(["", "Result symlink created: ./result"])
    return "\n".join(lines)


def format_derivation(stdout: str) -> str:
    """Summarise ``nix derivation show`` output, falling back to the raw text."""
    try:
        derivations = json.loads(stdout)
    except json.JSONDecodeError:
        return stdout
    if not isinstance(derivations, dict) or not derivations:
        return stdout

    drv_path, info = next(iter(derivations.items()))
    info = info if isinstance(info, dict) else {}
    result = f"Derivation Details:\n\nPath: {drv_path}\n\n"

    outputs = info.get("outputs")
    if isinstance(outputs, dict):
        result += "Outputs:\n"
        for name, output in outputs.items():
            result += f"  - {name}\n"
            if isinstance(output, dict) and isinstance(output.get("path"), str):
                result += f"    Path: {output['path']}\n"
        result += "\n"

    inputs = info.get("inputDrvs")
    if isinstance(inputs, dict):
        result += f"Build Dependencies: {len(inputs)} derivations\n"

    env = info.get("env")
    if isinstance(env, dict):
        result += "\nKey Environment Variables:\n"
        for key in DERIVATION_ENV_KEYS:
            if isinstance(env.get(key), str):
                result += f"  {key}: {env[key]}\n"

    return result + "\nFull JSON available for detailed inspection."


def format_closure_info(package: str, stdout: str) -> str:
    lines = stdout.splitlines()
    if not lines:
        return "No size information available"
    parts = lines[0].split()
    if len(parts) < 2:
        return stdout
    try:
        size = int(parts[1])
    except ValueError:
        size = 0
    return (
        f"Package: {package}\n"
        f"Closure Size: {format_closure_size(size)} ({size} bytes)\n\n"
        "This includes the package and all its dependencies."
    )


async def _build_path(installable: str, context: str) -> str:
    stdout = await to_result(["nix", "build", installable, "--json", "--no-link"], context)
    return build_output_path(stdout)


@registry.tool(TIMEOUT_BUILD)
async def nix_build(
    package: Annotated[str, "Installable to build, e.g. nixpkgs#hello or .#myPackage"],
    dry_run: Annotated[bool, "Only show what would be built"] = False,
) -> str:
    """Build a Nix package and show the build output paths."""
    validate_flake_ref(package, field="package")
    argv = ["nix", "build"]
    if dry_run:
        argv.append("--dry-run")
    argv.extend([package, "--json"])

    result = await run_command(argv)
    if not result.success:
        if dry_run:
            return f"Dry-run build check failed:\n\n{result.stderr}"
        return f"Build failed:\n\n{result.stderr}"

    if not dry_run:
        return format_build_result(result.stdout)
    try:
        plan = json.loads(result.stdout)
    except json.JSONDecodeError:
        return f"Dry-run completed successfully.\n\n{result.stderr}"
    return f"Dry-run completed successfully.\n\nBuild plan:\n{json.dumps(plan, indent=2)}"


@registry.tool(TIMEOUT_METADATA, read_only=True)
async def why_depends(
    package: Annotated[str, "Package that has the dependency"],
    dependency: Annotated[str, "Dependency to explain"],
    show_all: Annotated[bool, "Show all dependency paths, not just the shortest"] = False,
) -> str:
    """Explain why one package depends on another."""
    validate_flake_ref(package, field="package")
    validate_flake_ref(dependency, field="dependency")

    package_path = await _build_path(package, "Failed to build package")
    dependency_path = await _build_path(dependency, "Failed to build dependency")

    argv = ["nix", "why-depends", package_path, dependency_path]
    if show_all:
        argv.append("--all")
    result = await run_command(argv)
    if not result.success:
        if "does not depend on" in result.output:
            return f"{package} does not depend on {dependency}"
        raise_for_status(result, "why-depends failed")
    return result.stdout


@registry.tool(TIMEOUT_QUICK, read_only=True, idempotent=True, cache="derivation")
async def show_derivation(
    package: Annotated[str, "Installable whose derivation to show"],
) -> str:
    """Show the derivation of a package: outputs, inputs and key environment."""
    validate_flake_ref(package, field="package")

    async def produce() -> str:
        stdout = await to_result(["nix", "derivation", "show", package], "Failed to show derivation")
        return format_derivation(stdout)

    return await cached(registry.caches.derivation, (package,), produce)


@registry.tool(TIMEOUT_METADATA, read_only=True, idempotent=True, cache="closure_size")
async def get_closure_size(
    package: Annotated[str, "Installable whose closure size to compute"],
    human_readable: Annotated[bool, "Format the size in MB/GB instead of raw JSON"] = True,
) -> str:
    """Calculate the closure size of a package including all dependencies."""
    validate_flake_ref(package, field="package")

    async def produce() -> str:
        path = await _build_path(package, "Failed to build package")
        argv = ["nix", "path-info", "-S", path]
        if not human_readable:
            argv.append("--json")
        stdout = await to_result(argv, "Failed to get closure size")
        if not human_readable:
            return stdout
        return format_closure_info(package, stdout)

    return await cached(registry.caches.closure_size, (package, human_readable), produce)


@registry.tool(TIMEOUT_QUICK, read_only=True)
async def get_build_log(
    package: Annotated[str, "Installable or store path whose build log to fetch"],
) -> str:
    """Fetch the build log of a package, truncated to the first 50KB."""
    validate_flake_ref(package, field="package")
    result = await run_command(["nix", "log", package])
    if not result.success:
        if "does not have a known build log" in result.stderr or "no build logs available" in result.stderr:
            return (
                f"No build log available for '{package}'.\n\n"
                "This could mean:\n"
                "- The package hasn't been built yet (use nix_build first)\n"
                "- The build was done by a different user/system\n"
                "- The log has been garbage collected\n\n"
                f'Try building the package first: nix_build(package="{package}")'
            )
        raise_for_status(result, "Failed to get build log")
    return truncate_output(result.stdout)


async def _dry_run_drv(installable: str) -> str:
    stdout = await to_result(
        ["nix", "build", installable, "--json", "--no-link", "--dry-run"],
        f"Failed to evaluate {installable}",
    )
    return build_drv_path(stdout)


@registry.tool(TIMEOUT_METADATA, read_only=True)
async def diff_derivations(
    package_a: Annotated[str, "First installable"],
    package_b: Annotated[str, "Second installable"],
) -> str:
    """Compare the derivations of two packages using nix-diff."""
    validate_flake_ref(package_a, field="package_a")
    validate_flake_ref(package_b, field="package_b")

    if not is_available("nix-diff") or not (await run_command(["nix-diff", "--version"])).success:
        return (
            "nix-diff is not installed.\n\n"
            "Install with:\n  nix-shell -p nix-diff\n\n"
            "Or add to your flake devShell:\n  buildInputs = [ pkgs.nix-diff ];\n\n"
            "Alternatively, you can use show_derivation to inspect each package separately:\n"
            f'- show_derivation(package="{package_a}")\n'
            f'- show_derivation(package="{package_b}")'
        )

    drv_a = await _dry_run_drv(package_a)
    drv_b = await _dry_run_drv(package_b)
    result = await run_command(["nix-diff", drv_a, drv_b])
    # nix-diff exits 1 when the derivations differ
    if result.returncode not in (0, 1):
        raise_for_status(result, "nix-diff failed")
    if not result.stdout.strip():
        return f"Packages {package_a} and {package_b} have identical derivations (no differences found)."
    return f"Differences between {package_a} and {package_b}:\n\n{result.stdout}"


@registry.tool(TIMEOUT_BUILD)
async def nixos_build(
    machine: Annotated[str, "Name under nixosConfigurations"],
    flake: Annotated[str, "Flake containing the configuration"] = ".",
    use_nom: Annotated[bool, "Use nix-output-monitor when it is installed"] = False,
) -> str:
    """Build a NixOS configuration from a flake without activating it."""
    validate_machine_name(machine, field="machine")
    validate_flake_ref(flake, field="flake")
    target = f"{flake}#nixosConfigurations.{machine}.config.system.build.toplevel"
    program = "nom" if use_nom and is_available("nom") else "nix"

    result = await run_command([program, "build", target])
    if not result.success:
        return f"Build failed for NixOS configuration '{machine}':\n\n{result.output}"
    return f"Successfully built NixOS configuration '{machine}'.\n\n{result.output}\n\nThe build result is in ./result/"
