"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

vmanomaly tool catalog and the registry that serves it.
"""

from __future__ import annotations

from typing import Any

from ..docs import DocsIndex
from ..vmanomaly import VmanomalyClient
from .alerts import build_alert_tools
from .compatibility import build_compatibility_tools
from .config import build_config_tools
from .core import Tool, ToolContext, ToolOutput, ToolResult, ToolSpec
from .docs import build_docs_tools
from .info import build_info_tools
from .models import build_model_tools
from .policy import ToolDenyList
from .query import build_query_tools
from .registry import ToolRegistry
from .tasks import build_task_tools


def build_tools(
    client: VmanomalyClient,
    *,
    docs: DocsIndex,
    default_datasource_url: str | None = None,
) -> list[Tool[Any, Any]]:
    """
    Build the full vmanomaly tool catalog bound to one client.

    ``default_datasource_url`` is used by tools whose datasource is optional;
    it defaults to the client's base URL.
    """
    datasource = default_datasource_url or client.config.base_url
    return [
        *build_info_tools(client),
        *build_model_tools(client),
        *build_config_tools(client, default_datasource_url=datasource),
        *build_alert_tools(client),
        *build_task_tools(client, default_datasource_url=datasource),
        *build_query_tools(client, default_datasource_url=datasource),
        *build_compatibility_tools(client),
        *build_docs_tools(docs),
    ]


def build_registry(
    client: VmanomalyClient,
    *,
    docs: DocsIndex,
    deny_list: ToolDenyList | None = None,
    default_timeout: float | None = None,
) -> ToolRegistry:
    registry = ToolRegistry(deny_list=deny_list, default_timeout=default_timeout)
    registry.register_many(build_tools(client, docs=docs))
    return registry


__all__ = [
    "Tool",
    "ToolContext",
    "ToolDenyList",
    "ToolOutput",
    "ToolRegistry",
    "ToolResult",
    "ToolSpec",
    "build_registry",
    "build_tools",
]
