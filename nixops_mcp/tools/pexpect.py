"""Interactive pseudo-terminal sessions driven by pexpect-cli."""

from typing import Annotated

from ..config import PEXPECT_CLI, TIMEOUT_METADATA, TIMEOUT_QUICK
from ..executor import raise_for_status, run_command
from ..registry import registry
from ..validation import MAX_EXPRESSION_LEN, validate_session_id, validate_text
from .common import checked_command

PEXPECT_ARGV = ["nix", "run", PEXPECT_CLI, "--"]

SessionId = Annotated[str, "Session ID returned by pexpect_start"]


@registry.tool(TIMEOUT_QUICK)
async def pexpect_start(
    command: Annotated[str, "Program to spawn, e.g. bash or python3"],
    args: Annotated[list[str] | None, "Arguments passed to the program"] = None,
) -> str:
    """Start a new interactive pexpect-cli session and return its session ID."""
    checked_command(command)
    args = args or []
    for arg in args:
        validate_text(arg, "args")

    result = await run_command([*PEXPECT_ARGV, "--start", command, *args])
    stdout = raise_for_status(result, "pexpect-cli failed").stdout
    return f"Session started successfully. Session ID: {stdout.strip()}"


@registry.tool(TIMEOUT_METADATA)
async def pexpect_send(
    session_id: SessionId,
    code: Annotated[str, "Python code run against the session's `child` pexpect object"],
) -> str:
    """Send Python pexpect code to an active session, e.g. child.sendline('ls'); print(child.read())."""
    validate_session_id(session_id)
    validate_text(code, "code", MAX_EXPRESSION_LEN)

    result = await run_command([*PEXPECT_ARGV, session_id], stdin=code)
    text = result.stdout
    if result.stderr:
        text += ("\n" if text else "") + f"STDERR:\n{result.stderr}"
    return text or "Command sent successfully (no output)"


@registry.tool(TIMEOUT_QUICK)
async def pexpect_close(session_id: SessionId) -> str:
    """Close an active pexpect-cli session."""
    validate_session_id(session_id)
    result = await run_command([*PEXPECT_ARGV, session_id], stdin="child.close()")
    raise_for_status(result, "Failed to close session")
    return f"Session {session_id} closed successfully"
