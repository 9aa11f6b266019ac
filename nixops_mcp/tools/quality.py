"""Nix code quality tools: formatting, syntax validation and linting."""

import os
import tempfile
from typing import Annotated

from ..config import TIMEOUT_METADATA, TIMEOUT_QUICK, SpawnError
from ..executor import CommandResult, is_available, raise_for_status, run_command
from ..registry import registry
from ..validation import InvalidFormatError, validate_nix_expression, validate_path

LINTERS = ("statix", "deadnix", "both")

# (argv prefix, install hint, clean-run message) per linter
_LINTER_COMMANDS = {
    "statix": (["statix", "check"], "nix-shell -p statix", "No issues found by statix"),
    "deadnix": (["deadnix"], "nix-shell -p deadnix", "No dead code found"),
}


@registry.tool(TIMEOUT_QUICK, idempotent=True)
async def format_nix(
    code: Annotated[str, "Nix source code to format"],
) -> str:
    """Format Nix code using nixpkgs-fmt, falling back to alejandra."""
    validate_nix_expression(code, field="code")
    if is_available("nixpkgs-fmt"):
        argv = ["nixpkgs-fmt"]
    elif is_available("alejandra"):
        argv = ["alejandra", "--quiet", "-"]
    else:
        return "Neither nixpkgs-fmt nor alejandra found. Install with: nix-shell -p nixpkgs-fmt"

    result = await run_command(argv, stdin=code)
    return raise_for_status(result, "Formatting failed").stdout


@registry.tool(TIMEOUT_QUICK, read_only=True, idempotent=True)
async def validate_nix(
    code: Annotated[str, "Nix source code to check"],
) -> str:
    """Validate Nix code syntax and report parse errors."""
    validate_nix_expression(code, field="code")
    result = await run_command(["nix-instantiate", "--parse", "-E", code])
    if result.success:
        return "✓ Nix code is valid! No syntax errors found."
    return f"✗ Syntax errors found:\n\n{result.stderr}"


async def _run_linter(linter: str, path: str) -> str:
    argv, install_hint, clean = _LINTER_COMMANDS[linter]
    header = f"=== {linter} findings ==="
    try:
        result = await run_command([*argv, path])
    except SpawnError:
        return f"{header}\n({linter} not installed - run: {install_hint})"
    if result.stdout or result.stderr:
        return f"{header}\n{result.output}"
    return f"{header}\n✓ {clean}"


def _lint_report(results: list[str]) -> str:
    if not results:
        return 'No linters were run. Use linter="statix", "deadnix", or "both".'
    return "\n\n".join(results)


@registry.tool(TIMEOUT_QUICK, idempotent=True)
async def lint_nix(
    code: Annotated[str, "Nix source code to lint"],
    linter: Annotated[str, "Linter to run: statix, deadnix or both"] = "both",
) -> str:
    """Lint Nix code with statix and/or deadnix."""
    validate_nix_expression(code, field="code")
    if linter not in LINTERS:
        raise InvalidFormatError("linter", linter, 'one of "statix", "deadnix", "both"')

    selected = [name for name in _LINTER_COMMANDS if linter in (name, "both")]
    with tempfile.TemporaryDirectory(prefix="nix_lint_") as tmpdir:
        path = os.path.join(tmpdir, "input.nix")
        with open(path, "w", encoding="utf-8") as f:
            f.write(code)
        results = [await _run_linter(name, path) for name in selected]
    return _lint_report(results)


def _fmt_output(result: CommandResult) -> str:
    parts = [text for text in (result.stdout, result.stderr) if text]
    return "\n".join(parts) or "Code formatted successfully"


@registry.tool(TIMEOUT_METADATA)
async def nix_fmt(
    path: Annotated[str | None, "File or directory to format (default: whole project)"] = None,
) -> str:
    """Format the project with its flake formatter (nix fmt)."""
    argv = ["nix", "fmt"]
    if path is not None:
        argv.append(validate_path(path))
    result = await run_command(argv)
    return _fmt_output(raise_for_status(result, "nix fmt failed"))
