"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Text rendering helpers shared by the vmanomaly tools.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel

from ..vmanomaly import UpstreamError
from .core.errors import ToolExecutionError

CHARACTER_LIMIT = 25_000
MIN_KEPT_CHARS = 100

STATUS_ICONS = {
    "done": "✓",
    "error": "✗",
    "canceled": "⊘",
}
DEFAULT_STATUS_ICON = "⏳"


def to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


def format_json(value: Any) -> str:
    """Indented JSON, two spaces, non-ASCII kept as-is."""
    return json.dumps(to_jsonable(value), indent=2, ensure_ascii=False, default=str)


def truncate_response(content: str, limit: int = CHARACTER_LIMIT) -> str:
    """
    Cut ``content`` down to ``limit`` characters including a notice.

    A non-positive limit disables truncation. At least ``MIN_KEPT_CHARS``
    characters of the original content are always kept.
    """
    if limit <= 0 or len(content) <= limit:
        return content

    notice = (
        "\n\n...[Response truncated]\n\n"
        f"Response exceeded {limit} character limit (was {len(content)} characters). "
        "To see more results:\n"
        "- Use filters to narrow results\n"
        "- Narrow the time range or query\n"
        "- Request specific items by ID\n"
    )
    keep = max(limit - len(notice), MIN_KEPT_CHARS)
    return content[:keep] + notice


def capacity_percent(running: int, max_concurrent: int) -> int:
    """Share of task slots in use; truncating integer division, 0 when unbounded."""
    if max_concurrent <= 0:
        return 0
    return (running * 100) // max_concurrent


def status_icon(status: str) -> str:
    return STATUS_ICONS.get(status, DEFAULT_STATUS_ICON)


def upstream_failure(action: str, exc: UpstreamError) -> ToolExecutionError:
    """Build the caller-visible error for a failed backend call."""
    return ToolExecutionError(f"{action}: {exc}")
