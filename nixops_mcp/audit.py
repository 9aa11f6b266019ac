"""Structured security audit events.

Every event is serialized to JSON (the ``event_type`` field tells variants
apart) and written to the ``nixops_mcp.audit`` logger at the severity chosen
by the emitter. Handlers of that logger decide where the stream goes; the
server sends it to stderr with the rest of the log output.
"""

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, ClassVar

AUDIT_LOGGER_NAME = "nixops_mcp.audit"

INFO = "info"
WARNING = "warning"
ERROR = "error"
CRITICAL = "critical"

_LEVELS = {
    INFO: (logging.INFO, "Security audit event"),
    WARNING: (logging.WARNING, "Security audit warning"),
    ERROR: (logging.ERROR, "Security audit error"),
    CRITICAL: (logging.CRITICAL, "CRITICAL security audit event"),
}


@dataclass(frozen=True)
class AuditEvent:
    event_type: ClassVar[str] = "event"

    def to_dict(self) -> dict[str, Any]:
        return {"event_type": self.event_type, **asdict(self)}


@dataclass(frozen=True)
class ToolInvoked(AuditEvent):
    event_type: ClassVar[str] = "tool_invoked"

    tool_name: str
    parameters: Any
    success: bool
    error: str | None
    duration_ms: int


@dataclass(frozen=True)
class ValidationFailed(AuditEvent):
    event_type: ClassVar[str] = "validation_failed"

    field: str
    value: str
    reason: str


@dataclass(frozen=True)
class SuspiciousActivity(AuditEvent):
    event_type: ClassVar[str] = "suspicious_activity"

    description: str
    details: Any


@dataclass(frozen=True)
class OperationTimeout(AuditEvent):
    event_type: ClassVar[str] = "operation_timeout"

    operation: str
    timeout_secs: float


@dataclass(frozen=True)
class DangerousOperation(AuditEvent):
    event_type: ClassVar[str] = "dangerous_operation"

    operation: str
    approved: bool
    reason: str


def serialize_event(event: AuditEvent) -> str:
    """Render an event as JSON, substituting a marker record if that fails."""
    try:
        return json.dumps(event.to_dict())
    except (TypeError, ValueError) as e:
        return json.dumps(
            {
                "event_type": "event_serialization_failed",
                "original_event_type": event.event_type,
                "error": str(e),
            }
        )


class AuditLogger:
    """Process-wide audit sink shared by every tool call."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(AUDIT_LOGGER_NAME)

    def log(self, level: str, event: AuditEvent) -> None:
        log_level, label = _LEVELS.get(level, _LEVELS[INFO])
        payload = serialize_event(event)
        self.logger.log(log_level, "%s: %s", label, payload, extra={"audit_event": payload})

    def tool_invoked(
        self,
        tool_name: str,
        parameters: Any,
        success: bool,
        error: str | None,
        duration_ms: int,
    ) -> None:
        event = ToolInvoked(tool_name, parameters, success, error, duration_ms)
        self.log(INFO if success else WARNING, event)

    def validation_failed(self, field: str, value: str, reason: str) -> None:
        self.log(WARNING, ValidationFailed(field, value, reason))

    def suspicious_activity(self, description: str, details: Any, level: str = ERROR) -> None:
        self.log(level, SuspiciousActivity(description, details))

    def operation_timeout(self, operation: str, timeout_secs: float) -> None:
        self.log(WARNING, OperationTimeout(operation, timeout_secs))

    def dangerous_operation(self, operation: str, approved: bool, reason: str) -> None:
        self.log(WARNING if approved else ERROR, DangerousOperation(operation, approved, reason))
