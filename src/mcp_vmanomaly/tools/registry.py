"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

This module implements the ToolRegistry.
It holds the vmanomaly tools by name, caps how many run at once, resolves
the effective timeout of each call and hides deny-listed tools from both
listing and lookup.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, List

from .core import Tool, ToolContext, ToolResult
from .core.errors import ToolAlreadyRegisteredError, ToolNotFoundError
from .policy import ToolDenyList


class ToolRegistry:
    """
    Stores tools by name and runs them with:
      - concurrency limiting
      - registry-level default timeout
      - deny-list filtering on both listing and lookup
    """

    def __init__(
        self,
        *,
        max_concurrency: int = 32,
        default_timeout: float | None = None,
        deny_list: ToolDenyList | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")

        self._tools: Dict[str, Tool[Any, Any]] = {}
        self._max_concurrency = max_concurrency
        self._sem: asyncio.Semaphore | None = None
        self._default_timeout = default_timeout
        self._deny_list = deny_list or ToolDenyList()

    @property
    def deny_list(self) -> ToolDenyList:
        return self._deny_list

    # ''''''''''''
    # Registration
    # ''''''''''''

    def register(self, tool: Tool[Any, Any], *, overwrite: bool = False) -> None:
        name = tool.spec.name
        if not overwrite and name in self._tools:
            raise ToolAlreadyRegisteredError(f"Tool already registered: {name}")
        self._tools[name] = tool

    def register_many(self, tools: Iterable[Tool[Any, Any]], *, overwrite: bool = False) -> None:
        for t in tools:
            self.register(t, overwrite=overwrite)

    def get(self, name: str) -> Tool[Any, Any]:
        if not self._deny_list.allows(name):
            raise ToolNotFoundError(f"Unknown tool: {name}")
        try:
            return self._tools[name]
        except KeyError as e:
            raise ToolNotFoundError(f"Unknown tool: {name}") from e

    def list(self) -> List[Tool[Any, Any]]:
        return self._deny_list.filter(self._tools.values(), key=lambda t: t.spec.name)

    # '''''''''
    # Execution
    # '''''''''

    def _semaphore(self) -> asyncio.Semaphore:
        # Created lazily so the registry can be built outside a running loop.
        if self._sem is None:
            self._sem = asyncio.Semaphore(self._max_concurrency)
        return self._sem

    async def call(
        self,
        name: str,
        raw_args: Dict[str, Any],
        *,
        ctx: ToolContext | None = None,
        timeout: float | None = None,
        tool_call_id: str | None = None,
    ) -> ToolResult[Any]:
        """
        Execute a registered tool by name.

        Raises ``ToolNotFoundError`` for unknown or denied tools; any failure
        inside the tool itself is returned as an unsuccessful ``ToolResult``.

        Timeout precedence:
          1) call(timeout=...)
          2) tool.default_timeout
          3) registry default_timeout
        """
        tool = self.get(name)
        ctx = ctx or ToolContext()

        async with self._semaphore():
            if timeout is None:
                timeout = (
                    tool.default_timeout
                    if tool.default_timeout is not None
                    else self._default_timeout
                )
            return await tool.call(raw_args, ctx=ctx, timeout=timeout, tool_call_id=tool_call_id)


__all__ = ["ToolRegistry"]
