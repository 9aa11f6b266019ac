"""Development shell, evaluation and ad-hoc run tools."""

import os
from typing import Annotated

from ..caches import cached
from ..config import (
    NIXOS_MARKER,
    NIXOS_OPTIONS_SEARCH,
    TIMEOUT_BUILD,
    TIMEOUT_INTERACTIVE,
    TIMEOUT_QUICK,
    InternalError,
)
from ..executor import CommandResult, is_available, raise_for_status, run_command, to_result
from ..registry import registry
from ..utils import encode_option_query, truncate_output
from ..validation import (
    InvalidFormatError,
    validate_flake_ref,
    validate_nix_expression,
    validate_package_name,
    validate_path,
    validate_text,
)
from .common import checked_command, confirm_gate


def option_search_guidance(query: str) -> str:
    return (
        f"NixOS option search for '{query}':\n\n"
        "Search online:\n"
        f"- {NIXOS_OPTIONS_SEARCH}{encode_option_query(query)}\n"
        "- https://nixos.org/manual/nixos/stable/options.html\n\n"
        "On NixOS systems, you can also use:\n"
        f"- nixos-option {query}\n"
        "- man configuration.nix"
    )


def is_nixos() -> bool:
    return os.path.exists(NIXOS_MARKER)


def labelled_output(result: CommandResult) -> str:
    """Render non-empty stdout and stderr with STDOUT/STDERR labels."""
    text = ""
    if result.stdout:
        text += f"STDOUT:\n{result.stdout}\n"
    if result.stderr:
        text += f"STDERR:\n{result.stderr}"
    return text


@registry.tool(TIMEOUT_QUICK, read_only=True)
async def search_options(
    query: Annotated[str, "NixOS option name or prefix, e.g. services.nginx"],
) -> str:
    """Search NixOS configuration options."""
    validate_text(query, "query")
    if is_nixos() and is_available("nixos-option"):
        result = await run_command(["nixos-option", query])
        if result.success:
            return result.stdout
    return option_search_guidance(query)


@registry.tool(TIMEOUT_QUICK, read_only=True, cache="eval")
async def nix_eval(
    expression: Annotated[str, "Nix expression to evaluate"],
) -> str:
    """Evaluate a Nix expression and return the result."""
    validate_nix_expression(expression)

    async def produce() -> str:
        return await to_result(["nix", "eval", "--expr", expression], "Evaluation failed")

    return await cached(registry.caches.eval, (expression,), produce)


@registry.tool(TIMEOUT_INTERACTIVE)
async def run_in_shell(
    command: Annotated[str, "Command line to run inside the shell"],
    packages: Annotated[list[str] | None, "Packages to make available (nix-shell -p)"] = None,
    use_flake: Annotated[bool, "Use the flake devShell of the current directory instead"] = False,
) -> str:
    """Run a command in a Nix shell with the given packages available."""
    checked_command(command)
    packages = packages or []
    for package in packages:
        validate_package_name(package, field="packages")
    confirm_gate("run_in_shell", True, f"Running command: {command}")

    if use_flake:
        argv = ["nix", "develop", "-c", "sh", "-c", command]
    else:
        argv = ["nix-shell"]
        for package in packages:
            argv.extend(["-p", package])
        argv.extend(["--run", command])

    result = await run_command(argv)
    if result.success:
        return f"Command executed successfully!\n\nOutput:\n{result.output}"
    return (
        f"Command failed with exit code: {result.returncode}\n\n"
        f"Output:\n{result.stdout}\n\nError:\n{result.stderr}"
    )


@registry.tool(TIMEOUT_QUICK, read_only=True)
async def nix_log(
    store_path: Annotated[str, "Store path or installable whose log to show"],
    grep_pattern: Annotated[str | None, "Only return log lines containing this text"] = None,
) -> str:
    """Get a build log directly from a store path, optionally filtered by a pattern."""
    validate_path(store_path, field="store_path")
    if grep_pattern is not None:
        if not grep_pattern or "\0" in grep_pattern:
            raise InvalidFormatError("grep_pattern", grep_pattern, "non-empty text without null bytes")

    log = await to_result(["nix", "log", store_path], "Failed to get log")
    if grep_pattern is None:
        return truncate_output(log)

    matches = [line for line in log.splitlines() if grep_pattern in line]
    if not matches:
        return f"No lines matching '{grep_pattern}' found in log for {store_path}"
    return f"Lines matching '{grep_pattern}' in {store_path}:\n\n" + "\n".join(matches)


@registry.tool(TIMEOUT_BUILD)
async def nix_run(
    package: Annotated[str, "Installable to run, e.g. nixpkgs#hello"],
    args: Annotated[list[str] | None, "Arguments passed to the program"] = None,
) -> str:
    """Run an application from nixpkgs without installing it."""
    validate_flake_ref(package, field="package")
    argv = ["nix", "run", package]
    if args:
        for arg in args:
            validate_text(arg, "args")
        argv.extend(["--", *args])

    result = await run_command(argv)
    text = labelled_output(result) or f"Command completed successfully (exit code: {result.returncode})"
    if not result.success:
        raise InternalError(f"nix run failed: {text}")
    return text


@registry.tool(TIMEOUT_BUILD)
async def nix_develop(
    command: Annotated[str, "Program to run inside the development shell"],
    flake_ref: Annotated[str | None, "Flake providing the devShell (default: current directory)"] = None,
    args: Annotated[list[str] | None, "Arguments passed to the program"] = None,
) -> str:
    """Run a command in a Nix development environment from a flake devShell."""
    if flake_ref is not None:
        validate_flake_ref(flake_ref)
    checked_command(command)
    argv = ["nix", "develop"]
    if flake_ref is not None:
        argv.append(flake_ref)
    argv.extend(["-c", command])
    for arg in args or []:
        validate_text(arg, "args")
        argv.append(arg)

    result = await run_command(argv)
    text = labelled_output(result) or f"Command '{command}' completed successfully in development environment"
    if not result.success:
        raise InternalError(f"nix develop failed: {text}")
    return text
