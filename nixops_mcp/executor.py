"""Subprocess execution for NixOps-MCP tools.

Commands are always spawned from an argument vector. The only way to reach a
shell is :func:`execute_shell_script`, and it accepts nothing but arguments
that pass the flake reference validator.
"""

import asyncio
import logging
import os
import shlex
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from .config import SpawnError, SubprocessError
from .validation import validate_flake_ref

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one finished subprocess."""

    stdout: str
    stderr: str
    returncode: int | None

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


def is_available(program: str) -> bool:
    """Check if a program is on PATH."""
    return shutil.which(program) is not None


def _decode(data: bytes | None) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


async def run_command(
    argv: Sequence[str],
    cwd: str | None = None,
    stdin: str | None = None,
) -> CommandResult:
    """Run ``argv`` to completion and capture its output.

    Raises SpawnError if the program cannot be started. A non-zero exit is
    not an error here; callers inspect ``CommandResult.success``.
    """
    if not argv:
        raise ValueError("argv must not be empty")
    program = argv[0]
    if cwd is not None and not os.path.isdir(cwd):
        raise SpawnError(program, f"working directory not found: {cwd}")

    logger.debug("Running %s (cwd=%s)", shlex.join(argv), cwd or ".")
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            # never let a child read the MCP transport from our stdin
            stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
    except FileNotFoundError:
        raise SpawnError(program, "command not found") from None
    except PermissionError:
        raise SpawnError(program, "permission denied") from None
    except OSError as e:
        raise SpawnError(program, str(e)) from e

    stdout, stderr = await process.communicate(stdin.encode("utf-8") if stdin is not None else None)
    result = CommandResult(_decode(stdout), _decode(stderr), process.returncode)
    logger.debug("%s exited with %s", program, result.returncode)
    return result


def failure_message(context: str, result: CommandResult) -> str:
    if result.stderr.strip():
        return f"{context}:\n{result.stderr}"
    return f"{context}: command exited with code {result.returncode} and no error output"


def raise_for_status(result: CommandResult, context: str) -> CommandResult:
    if not result.success:
        raise SubprocessError(failure_message(context, result), result.returncode, result.stderr)
    return result


async def to_result(
    argv: Sequence[str],
    context: str,
    cwd: str | None = None,
    stdin: str | None = None,
) -> str:
    """Run ``argv`` and return its stdout, or raise SubprocessError on failure."""
    result = await run_command(argv, cwd=cwd, stdin=stdin)
    return raise_for_status(result, context).stdout


async def to_result_with_processor(
    argv: Sequence[str],
    processor: Callable[[CommandResult], T],
    cwd: str | None = None,
    stdin: str | None = None,
) -> T:
    """Run ``argv`` and hand the raw result to ``processor``."""
    result = await run_command(argv, cwd=cwd, stdin=stdin)
    return processor(result)


async def execute_shell_script(script: str, *args: str, cwd: str | None = None) -> CommandResult:
    """Run a fixed ``sh -c`` script with positional arguments.

    ``script`` must be a constant written by the caller; user input goes in
    ``args`` only and each one must be a valid flake reference.
    """
    for arg in args:
        validate_flake_ref(arg, field="script_argument")
    return await run_command(["sh", "-c", script, "sh", *args], cwd=cwd)
