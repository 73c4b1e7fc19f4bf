"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Ad-hoc query tool against VictoriaMetrics or VictoriaLogs via vmanomaly.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..vmanomaly import QueryRequest, UpstreamError, VmanomalyClient
from .core import Tool, ToolContext, tool
from .formatting import format_json, truncate_response, upstream_failure
from .tasks import DEFAULT_STEP, DatasourceType, forwarded_auth, normalize_datasource_type


class _QueryMetricsArgs(BaseModel):
    query: str = Field(
        min_length=1,
        description="PromQL for datasource_type 'vm', LogsQL for 'vmlogs'.",
    )
    start: float | None = Field(default=None, description="Start as Unix epoch seconds")
    end: float | None = Field(default=None, description="End as Unix epoch seconds")
    step: str | None = Field(default=None, description="Query resolution. Default: '1s'")
    datasource_type: DatasourceType | None = Field(
        default=None, description="'vm' (metrics) or 'vmlogs' (logs). Default: 'vm'"
    )
    datasource_url: str | None = Field(
        default=None, description="Datasource URL; defaults to the vmanomaly endpoint"
    )
    tenant_id: str | None = Field(default=None, description="Tenant identifier")
    nocache: str | None = Field(
        default=None, description="Any non-empty value bypasses the datasource cache"
    )
    pass_auth_headers: bool = Field(
        default=False,
        description="Forward the inbound Authorization header to the datasource",
    )


def build_query_tools(
    client: VmanomalyClient, *, default_datasource_url: str | None = None
) -> list[Tool[Any, Any]]:
    @tool(
        args_model=_QueryMetricsArgs,
        name="vmanomaly_query_metrics",
        annotations={"title": "Query Metrics", "readOnlyHint": True},
    )
    async def query_metrics(args: _QueryMetricsArgs, ctx: ToolContext) -> str:
        """
        Execute a PromQL query against VictoriaMetrics or a LogsQL query
        against VictoriaLogs. Use it to explore data and test queries before
        creating detection tasks.
        """
        if args.start is not None and args.end is not None and args.end < args.start:
            raise ValueError("end must not be earlier than start")
        request = QueryRequest(
            query=args.query,
            step=args.step if args.step is not None else DEFAULT_STEP,
            datasource_type=normalize_datasource_type(args.datasource_type),
            start=args.start,
            end=args.end,
            tenant_id=args.tenant_id,
            nocache=args.nocache,
            datasource_url=args.datasource_url or default_datasource_url,
            pass_auth_headers=args.pass_auth_headers,
        )
        try:
            result = await client.query(
                request, forward_headers=forwarded_auth(ctx, args.pass_auth_headers)
            )
        except UpstreamError as e:
            raise upstream_failure("Query failed", e) from e
        return truncate_response(f"Query Result:\n\n{format_json(result)}")

    return [query_metrics]
