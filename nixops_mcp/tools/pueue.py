"""Background task queue tools backed by pueue."""

import asyncio
from typing import Annotated

from ..config import PUEUE, InternalError
from ..executor import raise_for_status, run_command, to_result
from ..registry import registry
from ..validation import InvalidFormatError, validate_path, validate_task_ids, validate_text
from .common import checked_command

PUEUE_ARGV = ["nix", "run", PUEUE, "--"]

TIMEOUT_PUEUE = 30
MAX_PUEUE_WAIT = 3600
# Envelope ceiling for pueue_wait; stays above the longest wait the tool accepts
TIMEOUT_PUEUE_WAIT = MAX_PUEUE_WAIT + 30

TaskIds = Annotated[str, "Comma-separated task IDs, e.g. 0,1,2"]
OptionalTaskIds = Annotated[str | None, "Comma-separated task IDs (default: all tasks)"]


async def pueue(subcommand: str, *args: str) -> str:
    return await to_result([*PUEUE_ARGV, subcommand, *args], f"pueue {subcommand} failed")


def _ids_or_all(task_ids: str | None) -> list[str]:
    return validate_task_ids(task_ids) if task_ids is not None else ["--all"]


@registry.tool(TIMEOUT_PUEUE)
async def pueue_add(
    command: Annotated[str, "Program to queue"],
    args: Annotated[list[str] | None, "Arguments passed to the program"] = None,
    working_directory: Annotated[str | None, "Directory the task runs in"] = None,
    label: Annotated[str | None, "Label shown in pueue status"] = None,
) -> str:
    """Add a command to the pueue background task queue."""
    checked_command(command)
    options = []
    if working_directory is not None:
        options.extend(["--working-directory", validate_path(working_directory, field="working_directory")])
    if label is not None:
        options.extend(["--label", validate_text(label, "label")])
    args = args or []
    for arg in args:
        validate_text(arg, "args")
    return await pueue("add", *options, "--", command, *args)


@registry.tool(TIMEOUT_PUEUE, read_only=True)
async def pueue_status(task_ids: OptionalTaskIds = None) -> str:
    """Get the status of pueue tasks."""
    ids = validate_task_ids(task_ids) if task_ids is not None else []
    return await pueue("status", *ids)


@registry.tool(TIMEOUT_PUEUE, read_only=True)
async def pueue_log(
    task_id: Annotated[int, "Task ID"],
    lines: Annotated[int | None, "Only show the last N lines"] = None,
) -> str:
    """Get the output log of a pueue task."""
    if task_id < 0:
        raise InvalidFormatError("task_id", str(task_id), "non-negative task ID")
    options = []
    if lines is not None:
        if lines < 1:
            raise InvalidFormatError("lines", str(lines), "positive line count")
        options = ["--lines", str(lines)]
    return await pueue("log", str(task_id), *options)


@registry.tool(TIMEOUT_PUEUE_WAIT, read_only=True)
async def pueue_wait(
    task_ids: TaskIds,
    timeout: Annotated[int, "Seconds to wait before giving up (1-3600)"] = 300,
) -> str:
    """Wait for pueue tasks to finish."""
    ids = validate_task_ids(task_ids)
    if not 1 <= timeout <= MAX_PUEUE_WAIT:
        raise InvalidFormatError("timeout", str(timeout), f"integer between 1 and {MAX_PUEUE_WAIT}")

    try:
        async with asyncio.timeout(timeout):
            result = await run_command([*PUEUE_ARGV, "wait", *ids])
    except TimeoutError:
        raise InternalError(f"pueue wait timed out after {timeout} seconds") from None
    stdout = raise_for_status(result, "pueue wait failed").stdout
    return stdout or f"Task(s) {task_ids} completed successfully"


@registry.tool(TIMEOUT_PUEUE)
async def pueue_remove(task_ids: TaskIds) -> str:
    """Remove tasks from the pueue queue."""
    output = await pueue("remove", *validate_task_ids(task_ids))
    return output or f"Task(s) {task_ids} removed successfully"


@registry.tool(TIMEOUT_PUEUE)
async def pueue_clean() -> str:
    """Remove finished tasks from the pueue status list."""
    return await pueue("clean") or "Finished tasks cleaned successfully"


@registry.tool(TIMEOUT_PUEUE)
async def pueue_pause(task_ids: OptionalTaskIds = None) -> str:
    """Pause pueue tasks, or the whole queue when no IDs are given."""
    return await pueue("pause", *_ids_or_all(task_ids)) or "Task(s) paused successfully"


@registry.tool(TIMEOUT_PUEUE)
async def pueue_start(task_ids: OptionalTaskIds = None) -> str:
    """Start or resume pueue tasks, or the whole queue when no IDs are given."""
    return await pueue("start", *_ids_or_all(task_ids)) or "Task(s) started successfully"
