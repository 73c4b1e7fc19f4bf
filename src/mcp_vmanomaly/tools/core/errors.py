"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Exceptions raised by tool registration and execution.
"""


class ToolError(RuntimeError):
    """Base class for tool errors."""


class ToolAlreadyRegisteredError(ToolError):
    pass


class ToolNotFoundError(ToolError):
    """Raised for unknown tools and for tools excluded by the deny-list."""


class ToolValidationError(ToolError):
    """Raised when tool arguments do not match the tool's args model."""


class ToolExecutionError(ToolError):
    """Raised by tool handlers to report a caller-visible failure."""


class ToolTimeoutError(ToolError):
    pass
