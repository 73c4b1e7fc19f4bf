"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Core tool primitives: spec, context, result and the executable ``Tool``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import ToolTimeoutError, ToolValidationError

logger = logging.getLogger("mcp_vmanomaly.tools")

ArgsT = TypeVar("ArgsT", bound=BaseModel)
OutT = TypeVar("OutT")

ToolFn = Callable[..., Awaitable[Any] | Any]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """
    Declared shape of a tool.

    Attributes:
        name: Unique tool name.
        description: Human-readable description shown to the model.
        parameters_schema: JSON schema of the arguments object.
        output_schema: Optional JSON schema of structured output.
        annotations: Optional MCP tool annotations (read-only hints etc).
    """

    name: str
    description: str
    parameters_schema: dict[str, Any] = field(default_factory=dict)
    output_schema: dict[str, Any] | None = None
    annotations: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class ToolContext:
    """
    Per-invocation context handed to tool functions.

    ``headers`` holds the inbound session's HTTP headers (lower-cased names);
    it is empty for the stdio transport.
    """

    request_id: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolResult(Generic[OutT]):
    output: OutT | None = None
    success: bool = True
    error_message: str | None = None
    tool_name: str | None = None
    tool_call_id: str | None = None


@dataclass(frozen=True, slots=True)
class ToolOutput:
    """
    Explicit MCP content for a tool result.

    Tools returning plain text can return ``str``; tools that embed
    resources or declare an output schema return this instead.
    """

    content: list[dict[str, Any]] = field(default_factory=list)
    structured: dict[str, Any] | None = None


def as_async(fn: ToolFn) -> Callable[..., Awaitable[Any]]:
    """Wrap a sync callable so it can be awaited."""
    if inspect.iscoroutinefunction(fn):
        return fn

    async def _wrapped(*args: Any, **kwargs: Any) -> Any:
        return fn(*args, **kwargs)

    return _wrapped


class Tool(Generic[ArgsT, OutT]):
    """
    Executable tool: a function plus a pydantic args model.

    The function receives the validated args model and, when it declares a
    second parameter, the ``ToolContext``. Exceptions raised by the function
    never escape ``call``; they become failed ``ToolResult`` values.
    """

    def __init__(
        self,
        *,
        spec: ToolSpec,
        fn: ToolFn,
        args_model: type[ArgsT],
        default_timeout: float | None = None,
    ) -> None:
        self.spec = spec
        self.args_model = args_model
        self.default_timeout = default_timeout
        self._fn = as_async(fn)
        self._wants_ctx = len(inspect.signature(fn).parameters) >= 2

    def validate(self, raw_args: Mapping[str, Any]) -> ArgsT:
        try:
            return self.args_model.model_validate(dict(raw_args))
        except ValidationError as e:
            raise ToolValidationError(f"Invalid arguments for '{self.spec.name}': {e}") from e

    async def call(
        self,
        raw_args: Mapping[str, Any],
        *,
        ctx: ToolContext | None = None,
        timeout: float | None = None,
        tool_call_id: str | None = None,
    ) -> ToolResult[OutT]:
        ctx = ctx or ToolContext()
        try:
            args = self.validate(raw_args)
            coro = self._fn(args, ctx) if self._wants_ctx else self._fn(args)
            effective = timeout if timeout is not None else self.default_timeout
            if effective is not None:
                try:
                    output = await asyncio.wait_for(coro, timeout=effective)
                except asyncio.TimeoutError as e:
                    raise ToolTimeoutError(
                        f"Tool '{self.spec.name}' timed out after {effective} seconds."
                    ) from e
            else:
                output = await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:  # noqa: BLE001
            logger.debug("Tool %s failed: %s", self.spec.name, e)
            return ToolResult(
                success=False,
                error_message=str(e),
                tool_name=self.spec.name,
                tool_call_id=tool_call_id,
            )
        return ToolResult(
            output=output,
            success=True,
            tool_name=self.spec.name,
            tool_call_id=tool_call_id,
        )
