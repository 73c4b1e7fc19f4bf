"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Service information tools: health, build info and backend self-metrics.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from ..vmanomaly import UpstreamError, VmanomalyClient
from .core import Tool, tool
from .formatting import format_json, truncate_response, upstream_failure

_READ_ONLY = {"readOnlyHint": True, "destructiveHint": False, "openWorldHint": False}


class _EmptyArgs(BaseModel):
    pass


def build_info_tools(client: VmanomalyClient) -> list[Tool[Any, Any]]:
    @tool(
        args_model=_EmptyArgs,
        name="vmanomaly_health_check",
        annotations={"title": "Vmanomaly Health Check", **_READ_ONLY},
    )
    async def health_check(args: _EmptyArgs) -> str:
        """Check the health status of the vmanomaly server."""
        _ = args
        try:
            health = await client.get_health()
        except UpstreamError as e:
            raise upstream_failure("Health check failed", e) from e
        return format_json(health)

    @tool(
        args_model=_EmptyArgs,
        name="vmanomaly_get_buildinfo",
        annotations={"title": "Vmanomaly Build Info", **_READ_ONLY},
    )
    async def get_buildinfo(args: _EmptyArgs) -> str:
        """
        Get vmanomaly server build information including version number,
        build timestamp and runtime version. Use this to verify the server
        version, check compatibility, or confirm which version is running.
        """
        _ = args
        try:
            info = await client.get_build_info()
        except UpstreamError as e:
            raise upstream_failure("Failed to get build info", e) from e
        return f"vmanomaly Build Information:\n\n{format_json(info)}"

    @tool(
        args_model=_EmptyArgs,
        name="vmanomaly_get_metrics",
        annotations={"title": "Vmanomaly Self-Monitoring Metrics", **_READ_ONLY},
    )
    async def get_metrics(args: _EmptyArgs) -> str:
        """
        Get instant Prometheus-formatted self-monitoring metrics from the
        vmanomaly server: reader/writer performance, model execution stats,
        system info and resource usage, in text exposition format.
        """
        _ = args
        try:
            metrics = await client.get_metrics()
        except UpstreamError as e:
            raise upstream_failure("Failed to get metrics", e) from e
        return truncate_response(f"vmanomaly Prometheus Metrics:\n\n{metrics}")

    return [health_check, get_buildinfo, get_metrics]
