"""Nix package discovery tools: search, metadata, nix-index lookups and comma."""

from typing import Annotated, Any

from ..caches import cached
from ..config import TIMEOUT_BUILD, TIMEOUT_METADATA, TIMEOUT_QUICK
from ..executor import is_available, raise_for_status, run_command, to_result
from ..registry import registry
from ..utils import parse_json_output
from ..validation import (
    InvalidFormatError,
    validate_flake_ref,
    validate_package_name,
    validate_text,
)
from .common import checked_command

MAX_SEARCH_LIMIT = 100
MAX_LOCATE_LIMIT = 500


def _check_limit(limit: int, maximum: int) -> None:
    if not 1 <= limit <= maximum:
        raise InvalidFormatError("limit", str(limit), f"integer between 1 and {maximum}")


def format_search_results(query: str, results: Any, limit: int) -> str:
    entries = []
    if isinstance(results, dict):
        for pkg_path, info in list(results.items())[:limit]:
            info = info if isinstance(info, dict) else {}
            entries.append(
                f"Package: {pkg_path}\n"
                f"Version: {info.get('version') or 'unknown'}\n"
                f"Description: {info.get('description') or 'No description'}\n"
            )
    if not entries:
        return f"No packages found matching '{query}'"
    return f"Found {len(entries)} packages matching '{query}':\n\n" + "\n".join(entries)


def format_package_meta(package: str, meta: dict[str, Any]) -> str:
    info = [f"Package: {package}"]
    for key, label in (("version", "Version"), ("description", "Description"), ("homepage", "Homepage")):
        value = meta.get(key)
        if isinstance(value, str):
            info.append(f"{label}: {value}")

    license_info = meta.get("license")
    if isinstance(license_info, list) and license_info:
        license_info = license_info[0]
    if isinstance(license_info, dict):
        name = license_info.get("spdxId") or license_info.get("fullName")
        if name:
            info.append(f"License: {name}")

    platforms = [p for p in meta.get("platforms") or [] if isinstance(p, str)][:5]
    if platforms:
        info.append(f"Platforms: {', '.join(platforms)} (showing first 5)")

    maintainers = [
        m["name"] for m in meta.get("maintainers") or [] if isinstance(m, dict) and isinstance(m.get("name"), str)
    ][:3]
    if maintainers:
        info.append(f"Maintainers: {', '.join(maintainers)}")
    return "\n".join(info)


@registry.tool(TIMEOUT_QUICK, read_only=True, idempotent=True, cache="search")
async def search_packages(
    query: Annotated[str, "Package name or keyword to search for in nixpkgs"],
    limit: Annotated[int, "Maximum number of results (1-100)"] = 10,
) -> str:
    """Search for packages in nixpkgs by name or description."""
    validate_package_name(query)
    _check_limit(limit, MAX_SEARCH_LIMIT)

    async def produce() -> str:
        stdout = await to_result(["nix", "search", "nixpkgs", query, "--json"], "nix search failed")
        return format_search_results(query, parse_json_output(stdout, "search results"), limit)

    return await cached(registry.caches.search, (query, limit), produce)


@registry.tool(TIMEOUT_QUICK, read_only=True, idempotent=True, cache="package_info")
async def get_package_info(
    package: Annotated[str, "Installable to evaluate, e.g. nixpkgs#hello"],
) -> str:
    """Get detailed information about a specific package as JSON."""
    validate_flake_ref(package, field="package")

    async def produce() -> str:
        return await to_result(["nix", "eval", package, "--json"], "nix eval failed")

    return await cached(registry.caches.package_info, (package,), produce)


@registry.tool(TIMEOUT_QUICK, read_only=True, idempotent=True, cache="package_info")
async def explain_package(
    package: Annotated[str, "Package attribute name, e.g. ripgrep, or an installable like nixpkgs#ripgrep"],
) -> str:
    """Get package metadata: version, description, homepage, license, platforms and maintainers."""
    if "#" in package:
        pkg_ref = validate_flake_ref(package, field="package")
    else:
        pkg_ref = f"nixpkgs#{validate_package_name(package)}"

    async def produce() -> str:
        stdout = await to_result(["nix", "eval", "--json", f"{pkg_ref}.meta"], "Failed to evaluate package")
        meta = parse_json_output(stdout, "metadata")
        return format_package_meta(package, meta if isinstance(meta, dict) else {})

    return await cached(registry.caches.package_info, ("explain", package), produce)


@registry.tool(TIMEOUT_QUICK, read_only=True, idempotent=True, cache="locate")
async def find_command(
    command: Annotated[str, "Command name to look up, e.g. rg"],
) -> str:
    """Find which package provides a command using nix-locate."""
    checked_command(command)
    argv = ["nix-locate", "--top-level", "--whole-name", f"/bin/{command}"]
    guidance = (
        "nix-locate not available. Install with: nix-shell -p nix-index\n\n"
        f"To find command '{command}' manually:\n"
        f"1. nix search nixpkgs {command}\n"
        f"2. Try common packages: nix-shell -p {command}\n"
        "3. Use https://search.nixos.org/packages to search"
    )

    async def produce() -> str:
        result = await run_command(argv)
        packages = [line.split()[0] for line in result.stdout.splitlines() if line.strip()][:10]
        if not packages:
            return f"Command '{command}' not found in any package.\n\nTry:\n- nix search nixpkgs {command}"
        listing = "\n".join(f"  - {pkg}" for pkg in packages)
        return f"Command '{command}' is provided by:\n\n{listing}\n\nInstall with:\n  nix-shell -p {packages[0]}"

    if not is_available("nix-locate"):
        return guidance
    return await cached(registry.caches.locate, ("bin", command), produce)


@registry.tool(TIMEOUT_METADATA, read_only=True, idempotent=True, cache="locate")
async def nix_locate(
    path: Annotated[str, "File path to look up, e.g. bin/rg or lib/libssl.so"],
    limit: Annotated[int, "Maximum number of results (default: 20)"] = 20,
) -> str:
    """Find which package provides a specific file path using nix-locate."""
    validate_text(path, "path")
    _check_limit(limit, MAX_LOCATE_LIMIT)

    async def produce() -> str:
        result = await run_command(["nix-locate", "--whole-name", path])
        raise_for_status(result, "nix-locate failed")
        lines = [line for line in result.stdout.splitlines() if line.strip()]
        if not lines:
            return f"No packages found providing '{path}'"
        text = f"Found {len(lines)} package(s) providing '{path}':\n\n" + "\n".join(lines[:limit])
        if len(lines) > limit:
            text += f"\n\n... and {len(lines) - limit} more results (showing top {limit})"
        return text

    if not is_available("nix-locate"):
        return (
            "nix-locate is not available. Install it with: nix-shell -p nix-index\n"
            "Then build the database with: nix-index\n"
            "This may take several minutes on first run."
        )
    return await cached(registry.caches.locate, (path, limit), produce)


@registry.tool(TIMEOUT_BUILD)
async def comma(
    command: Annotated[str, "Program to run from nixpkgs"],
    args: Annotated[list[str] | None, "Arguments passed to the program"] = None,
) -> str:
    """Run a program without installing it using comma."""
    checked_command(command)
    args = args or []
    for arg in args:
        validate_text(arg, "args")

    if not is_available(","):
        return (
            "The 'comma' tool is not available.\n\n"
            "Install with:\n"
            "- nix-env -iA nixpkgs.comma\n"
            "- Or add to your NixOS configuration: environment.systemPackages = [ pkgs.comma ];\n\n"
            "Comma requires nix-index. Install and update it:\n"
            "- nix-shell -p nix-index --run nix-index\n\n"
            f"Alternatively, try:\n- nix run nixpkgs#{command} -- {' '.join(args)}"
        )

    result = await run_command([",", command, *args])
    parts = [text for text in (result.stdout, result.stderr) if text]
    if not parts:
        return f"Command completed (exit code: {result.returncode})"
    return "\n".join(parts)
