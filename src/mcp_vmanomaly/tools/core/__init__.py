from .base import (
    Tool,
    ToolContext,
    ToolResult,
    ToolSpec,
    ToolFn,
    ToolOutput,
    as_async,
)
from .decorator import args_schema, tool
from .errors import (
    ToolAlreadyRegisteredError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolTimeoutError,
    ToolValidationError,
)

__all__ = [
    "Tool",
    "ToolSpec",
    "ToolContext",
    "ToolResult",
    "ToolFn",
    "ToolOutput",
    "as_async",
    "args_schema",
    "tool",
    "ToolError",
    "ToolAlreadyRegisteredError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolTimeoutError",
    "ToolValidationError",
]
