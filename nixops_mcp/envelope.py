"""Execution envelope wrapped around every tool body.

The operators compose as ``audit_around(cancel_around(timeout_around(body)))``
so that a timeout shows up as an ``operation_timeout`` event and a
cancellation as a failed ``tool_invoked`` event with its own message.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from .audit import AuditLogger
from .config import MAX_AUDIT_PARAM_CHARS, OperationCancelledError, OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")
Body = Callable[[], Awaitable[T]]

# Free-form source code is recorded by size only
LENGTH_ONLY_PARAMS = frozenset({"code"})


def redact_parameters(params: dict[str, Any] | None) -> dict[str, Any] | None:
    """Replace long or free-form string arguments with their length."""
    if params is None:
        return None
    redacted: dict[str, Any] = {}
    for key, value in params.items():
        if isinstance(value, str) and (key in LENGTH_ONLY_PARAMS or len(value) > MAX_AUDIT_PARAM_CHARS):
            redacted[key] = f"<{len(value)} chars>"
        else:
            redacted[key] = value
    return redacted


async def audit_around(audit: AuditLogger, name: str, params: dict[str, Any] | None, body: Body[T]) -> T:
    """Run ``body`` and record exactly one ``tool_invoked`` event for it."""
    start = time.monotonic()

    def elapsed_ms() -> int:
        return int((time.monotonic() - start) * 1000)

    params = redact_parameters(params)
    try:
        result = await body()
    except asyncio.CancelledError:
        audit.tool_invoked(name, params, False, "Operation cancelled by client", elapsed_ms())
        raise
    except Exception as e:
        audit.tool_invoked(name, params, False, str(e), elapsed_ms())
        raise
    audit.tool_invoked(name, params, True, None, elapsed_ms())
    return result


async def timeout_around(audit: AuditLogger, name: str, seconds: float, body: Body[T]) -> T:
    """Cancel ``body`` after ``seconds`` and report it as a timeout."""
    deadline = asyncio.timeout(seconds)
    try:
        async with deadline:
            return await body()
    except TimeoutError:
        # a TimeoutError raised by the body itself is not ours to translate
        if not deadline.expired():
            raise
        logger.warning("Tool %s timed out after %s seconds", name, seconds)
        audit.operation_timeout(name, seconds)
        raise OperationTimeoutError(name, seconds) from None


async def cancel_around(body: Body[T], cancel_event: asyncio.Event | None = None) -> T:
    """Race ``body`` against client cancellation.

    Cancellation arrives either through ``cancel_event`` or as cancellation of
    the calling task. The body task is cancelled and its pending subprocess
    is left for the OS to reap.
    """
    task = asyncio.ensure_future(body())
    waiter = asyncio.ensure_future(cancel_event.wait()) if cancel_event is not None else None
    try:
        if waiter is None:
            return await task
        done, _pending = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        if task in done:
            return task.result()
        task.cancel()
        raise OperationCancelledError()
    except asyncio.CancelledError:
        task.cancel()
        raise OperationCancelledError() from None
    finally:
        if waiter is not None:
            waiter.cancel()


async def run_enveloped(
    audit: AuditLogger,
    name: str,
    params: dict[str, Any] | None,
    timeout: float,
    body: Body[T],
    cancel_event: asyncio.Event | None = None,
) -> T:
    """Compose the three operators around one tool body."""
    return await audit_around(
        audit,
        name,
        params,
        lambda: cancel_around(lambda: timeout_around(audit, name, timeout, body), cancel_event),
    )
