"""Tool registry and dispatch.

Handlers are registered with :meth:`ToolRegistry.tool`, which records a
:class:`ToolDescriptor`, wraps the handler in the execution envelope and
hands the wrapped function to FastMCP. ``call_tool`` is the dispatch path
used when a raw argument object has to be decoded first.
"""

import asyncio
import functools
import inspect
import logging
import typing
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import pydantic
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.middleware import Middleware, MiddlewareContext
from fastmcp.tools import Tool
from mcp.types import ToolAnnotations

from .audit import AuditLogger
from .caches import CacheRegistry
from .config import (
    SERVER_NAME,
    SERVER_VERSION,
    InternalError,
    InvalidParamsError,
    ToolCallError,
    ToolNotFoundError,
)
from .envelope import run_enveloped
from .reference import SERVER_INSTRUCTIONS
from .validation import ValidationError

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[str]]

# Rejected values are echoed into the audit log, cut to this size
_MAX_AUDIT_VALUE_CHARS = 200


@dataclass(frozen=True)
class ToolDescriptor:
    """Static description of one exposed tool."""

    name: str
    description: str
    handler: Handler
    timeout: float
    read_only: bool
    destructive: bool
    idempotent: bool
    cache: str | None
    arguments: type[pydantic.BaseModel]
    tool: Tool

    @property
    def annotations(self) -> ToolAnnotations:
        return tool_annotations(self.read_only, self.destructive, self.idempotent)


def tool_annotations(read_only: bool, destructive: bool, idempotent: bool) -> ToolAnnotations:
    return ToolAnnotations(
        readOnlyHint=read_only,
        destructiveHint=destructive,
        idempotentHint=idempotent,
        openWorldHint=False,
    )


def _argument_model(name: str, fn: Handler) -> type[pydantic.BaseModel]:
    """Build a pydantic model mirroring the handler's keyword arguments."""
    hints = typing.get_type_hints(fn, include_extras=True)
    fields: dict[str, Any] = {}
    for param in inspect.signature(fn).parameters.values():
        annotation = hints.get(param.name, Any)
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[param.name] = (annotation, default)
    return pydantic.create_model(f"{name}_arguments", **fields)


def _decode_errors(exc: pydantic.ValidationError) -> list[dict[str, str]]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors(include_url=False)
    ]


class ToolErrorMiddleware(Middleware):
    """Render client-facing tool errors with their category and structured detail.

    FastMCP reports a failed ``tools/call`` as an error result holding the
    exception text, so the JSON-RPC code and ``data`` are folded into it here.
    """

    async def on_call_tool(self, context: MiddlewareContext, call_next):
        try:
            return await call_next(context)
        except ToolCallError as e:
            raise ToolError(e.client_text()) from e


class ToolRegistry:
    """Process-wide catalog of tools plus the shared handles they use."""

    def __init__(
        self,
        mcp: FastMCP,
        audit: AuditLogger | None = None,
        caches: CacheRegistry | None = None,
    ) -> None:
        self.mcp = mcp
        self.audit = audit or AuditLogger()
        self.caches = caches or CacheRegistry()
        self._tools: dict[str, ToolDescriptor] = {}
        mcp.add_middleware(ToolErrorMiddleware())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> list[str]:
        return list(self._tools)

    def descriptor(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def tool(
        self,
        timeout: float,
        *,
        name: str | None = None,
        read_only: bool = False,
        destructive: bool = False,
        idempotent: bool = False,
        cache: str | None = None,
    ) -> Callable[[Handler], Tool]:
        """Register an async handler as an MCP tool running inside the envelope."""

        def decorator(fn: Handler) -> Tool:
            tool_name = name or fn.__name__
            if tool_name in self._tools:
                raise ValueError(f"Duplicate tool name: {tool_name}")
            if cache is not None and cache not in CacheRegistry.NAMES:
                raise ValueError(f"Unknown cache for tool {tool_name}: {cache}")
            signature = inspect.signature(fn)

            @functools.wraps(fn)
            async def enveloped(*args: Any, **kwargs: Any) -> str:
                bound = signature.bind(*args, **kwargs)
                bound.apply_defaults()
                return await self.invoke(tool_name, dict(bound.arguments), lambda: fn(*args, **kwargs))

            annotations = tool_annotations(read_only, destructive, idempotent)
            description = inspect.getdoc(fn) or tool_name
            registered = self.mcp.tool(name=tool_name, description=description, annotations=annotations)(enveloped)
            self._tools[tool_name] = ToolDescriptor(
                name=tool_name,
                description=description,
                handler=fn,
                timeout=timeout,
                read_only=read_only,
                destructive=destructive,
                idempotent=idempotent,
                cache=cache,
                arguments=_argument_model(tool_name, fn),
                tool=registered,
            )
            return registered

        return decorator

    async def invoke(
        self,
        name: str,
        params: dict[str, Any],
        body: Callable[[], Awaitable[str]],
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Run an already-decoded call of tool ``name`` through the envelope."""
        descriptor = self.descriptor(name)

        async def guarded() -> str:
            try:
                return await body()
            except ValidationError as e:
                self.audit.validation_failed(e.field, e.value[:_MAX_AUDIT_VALUE_CHARS], e.reason)
                raise InvalidParamsError(str(e), {"field": e.field, "reason": e.reason}) from e
            except ToolCallError:
                raise
            except Exception as e:
                logger.exception("Unhandled error in tool %s", name)
                raise InternalError(f"Internal error in tool '{name}': {e}") from e

        return await run_enveloped(self.audit, name, params, descriptor.timeout, guarded, cancel_event)

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Decode ``arguments`` for tool ``name`` and run it.

        Unknown names raise ToolNotFoundError and undecodable arguments raise
        InvalidParamsError; neither reaches the handler or the audit log.
        """
        descriptor = self.descriptor(name)
        try:
            decoded = descriptor.arguments.model_validate(arguments or {})
        except pydantic.ValidationError as e:
            raise InvalidParamsError(f"Invalid arguments for tool '{name}'", {"errors": _decode_errors(e)}) from e
        kwargs = dict(decoded)
        return await self.invoke(name, kwargs, lambda: descriptor.handler(**kwargs), cancel_event)

    def list_tools(self) -> list[dict[str, Any]]:
        """Describe every registered tool the way ``tools/list`` reports it."""
        return [
            {
                "name": descriptor.name,
                "description": descriptor.description,
                "inputSchema": descriptor.tool.parameters,
                "annotations": descriptor.annotations.model_dump(exclude_none=True),
                "timeout": descriptor.timeout,
                "cache": descriptor.cache,
            }
            for descriptor in self._tools.values()
        ]


mcp = FastMCP(SERVER_NAME, instructions=SERVER_INSTRUCTIONS, version=SERVER_VERSION)
registry = ToolRegistry(mcp)
