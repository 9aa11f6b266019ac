"""Helpers shared by the tool handlers."""

import logging

from ..audit import WARNING
from ..executor import CommandResult
from ..registry import registry
from ..validation import find_dangerous_patterns, validate_command

logger = logging.getLogger(__name__)


def checked_command(command: str, field: str = "command") -> str:
    """Validate a user command and report destructive-looking patterns without rejecting them."""
    validate_command(command, field)
    patterns = find_dangerous_patterns(command)
    if patterns:
        logger.warning("User command contains potentially dangerous pattern: %s", ", ".join(patterns))
        registry.audit.suspicious_activity(
            "User command contains potentially dangerous pattern",
            {"command": command, "patterns": patterns},
            level=WARNING,
        )
    return command


def confirm_gate(operation: str, confirm: bool, reason: str) -> bool:
    """Record a destructive operation request and return whether it may proceed."""
    registry.audit.dangerous_operation(operation, confirm, reason)
    return confirm


def report(result: CommandResult, success: str, failure: str) -> str:
    """Shape a command whose failure is returned as text rather than an error."""
    if not result.success:
        return f"{failure}\n\n{result.stdout}{result.stderr}"
    return f"{success}\n\n{result.stdout}{result.stderr}"


def confirmation_required(action: str, consequences: list[str]) -> str:
    """Text returned instead of running a destructive command without confirm=true."""
    listing = "\n".join(f"- {line}" for line in consequences)
    return (
        f"WARNING: {action}\n\n"
        f"This is a destructive operation that will:\n{listing}\n\n"
        "To proceed, call this function again with confirm=true"
    )
