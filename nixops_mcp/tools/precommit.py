"""Pre-commit hook tools for the repository in the working directory."""

import os
from typing import Annotated

from ..config import (
    PRE_COMMIT_HOOKS_NIX,
    TIMEOUT_BUILD,
    TIMEOUT_METADATA,
    TIMEOUT_QUICK,
    InternalError,
    InvalidParamsError,
    SpawnError,
)
from ..executor import is_available, run_command
from ..registry import registry
from ..validation import validate_package_name

PRE_COMMIT_CONFIG = ".pre-commit-config.yaml"
GIT_HOOK = os.path.join(".git", "hooks", "pre-commit")


def _require_pre_commit(hint: str) -> None:
    if not is_available("pre-commit"):
        raise SpawnError("pre-commit", f"command not found. {hint}")


@registry.tool(TIMEOUT_BUILD)
async def pre_commit_run(
    all_files: Annotated[bool, "Run on all files instead of only staged ones"] = False,
    hook_ids: Annotated[str | None, "Comma-separated hook IDs to run (default: all hooks)"] = None,
) -> str:
    """Run pre-commit hooks on the repository."""
    argv = ["pre-commit", "run"]
    if all_files:
        argv.append("--all-files")
    if hook_ids is not None:
        for hook_id in hook_ids.split(","):
            argv.extend(["--hook-stage", "manual", validate_package_name(hook_id.strip(), field="hook_ids")])

    _require_pre_commit(
        "Make sure you're in a git repository with pre-commit hooks installed (run 'nix develop' first)."
    )
    result = await run_command(argv)
    text = result.stdout
    if result.stderr:
        text += ("\n" if text else "") + f"STDERR:\n{result.stderr}"
    text = text or "All pre-commit hooks passed successfully!"
    if not result.success:
        text += f"\n\nExit code: {result.returncode}\nSome hooks failed. Fix the issues above and try again."
    return text


@registry.tool(TIMEOUT_QUICK, read_only=True)
async def check_pre_commit_status() -> str:
    """Check whether pre-commit hooks are installed and configured in the current repository."""
    if not os.path.exists(".git"):
        return "❌ Not a git repository (no .git directory found)\n"

    result = ""
    warnings = []
    version = None
    if is_available("pre-commit"):
        check = await run_command(["pre-commit", "--version"])
        if check.success:
            version = check.stdout.strip()
    if version is not None:
        result += f"✅ pre-commit is available: {version}"
    else:
        result += "⚠️  pre-commit command not found in PATH\n"
        result += "   Run 'nix develop' to enter development shell with pre-commit\n"
        warnings.append("pre-commit not in PATH")

    config_exists = os.path.exists(PRE_COMMIT_CONFIG)
    if config_exists:
        result += f"\n✅ {PRE_COMMIT_CONFIG} found\n"
    else:
        result += f"\n❌ {PRE_COMMIT_CONFIG} not found\n"
        warnings.append("config missing")

    hook_exists = os.path.exists(GIT_HOOK)
    if hook_exists:
        result += "✅ Git pre-commit hook is installed\n"
    else:
        result += "❌ Git pre-commit hook not installed\n"
        if config_exists and version is not None:
            result += "   Run 'pre-commit install' to install hooks\n"
            warnings.append("hooks not installed")

    result += "\n--- SUMMARY ---\n"
    if not warnings:
        return result + "✅ Pre-commit hooks are fully configured and ready to use!\n"

    result += "⚠️  Pre-commit hooks are not fully set up.\n\nRECOMMENDED ACTIONS:\n"
    if version is None:
        result += "1. Enter the Nix development shell: nix develop\n"
    if not config_exists:
        result += (
            "2. Pre-commit hooks are typically configured in flake.nix for Nix projects\n"
            "   Check if your flake.nix has pre-commit-hooks.nix configuration\n"
            "   Consider using the setup_pre_commit tool to set this up automatically\n"
        )
    elif not hook_exists:
        result += "2. Install the hooks: pre-commit install\n   Or use: nix develop -c pre-commit install\n"
    return result


@registry.tool(TIMEOUT_METADATA)
async def setup_pre_commit(
    install: Annotated[bool, "Also run 'pre-commit install'"] = False,
) -> str:
    """Explain how to set up pre-commit hooks for this project and optionally install them."""
    if not os.path.exists(".git"):
        raise InvalidParamsError("Not a git repository. Initialize git first with 'git init'")

    if os.path.exists("flake.nix"):
        result = (
            "✅ flake.nix found\n\n"
            "For Nix projects, pre-commit hooks should be configured in flake.nix using pre-commit-hooks.nix.\n\n"
            "RECOMMENDED SETUP:\n"
            "1. Add pre-commit-hooks.nix to flake inputs\n"
            "2. Configure hooks in the flake\n"
            "3. Integrate with devShell\n"
            "4. Enter dev shell: nix develop\n\n"
            "The hooks will then auto-install when entering the dev shell.\n\n"
            f"See {PRE_COMMIT_HOOKS_NIX} for examples.\n"
        )
    else:
        result = (
            "⚠️  No flake.nix found. Setting up basic pre-commit configuration.\n\n"
            "For better integration with Nix projects, consider using flake.nix with pre-commit-hooks.nix.\n\n"
        )

    if not install:
        return result

    result += "Installing pre-commit hooks...\n"
    _require_pre_commit("Make sure pre-commit is available (run 'nix develop' first).")
    output = await run_command(["pre-commit", "install"])
    if not output.success:
        raise InternalError(f"Failed to install pre-commit hooks: {output.stderr}")
    result += "✅ Pre-commit hooks installed successfully!\n"
    if output.stdout:
        result += f"\n{output.stdout}"
    return result
