"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

``@tool`` decorator turning an async function into a ``Tool``.
"""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel

from .base import Tool, ToolFn, ToolSpec


def args_schema(args_model: type[BaseModel]) -> dict[str, Any]:
    """JSON schema for an args model, without pydantic's cosmetic titles."""
    schema = args_model.model_json_schema()
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        if isinstance(prop, dict):
            prop.pop("title", None)
    schema.setdefault("type", "object")
    schema.setdefault("properties", {})
    return schema


def tool(
    *,
    args_model: type[BaseModel],
    name: str | None = None,
    description: str | None = None,
    output_schema: dict[str, Any] | None = None,
    annotations: dict[str, Any] | None = None,
    default_timeout: float | None = None,
) -> Callable[[ToolFn], Tool[Any, Any]]:
    """
    Build a ``Tool`` from a function taking ``(args)`` or ``(args, ctx)``.

    The name defaults to the function name and the description to its
    docstring.
    """

    def _decorate(fn: ToolFn) -> Tool[Any, Any]:
        spec = ToolSpec(
            name=name or fn.__name__,
            description=description or (fn.__doc__ or "").strip(),
            parameters_schema=args_schema(args_model),
            output_schema=output_schema,
            annotations=annotations,
        )
        return Tool(
            spec=spec,
            fn=fn,
            args_model=args_model,
            default_timeout=default_timeout,
        )

    return _decorate
