"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Anomaly detection task tools: create, inspect, list and cancel tasks, and
read the backend's concurrency limits.

Defaults for omitted optional arguments are applied here, never in the
client: step ``1s``, fit window and cadence ``1d``, anomaly threshold
``1.0``, datasource type ``vm`` and the configured endpoint as datasource.
An explicit zero value supplied by the caller is sent as given.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..vmanomaly import DetectionTaskRequest, UpstreamError, VmanomalyClient
from .core import Tool, ToolContext, tool
from .formatting import capacity_percent, format_json, status_icon, upstream_failure

DEFAULT_STEP = "1s"
DEFAULT_FIT_WINDOW = "1d"
DEFAULT_FIT_EVERY = "1d"
DEFAULT_ANOMALY_THRESHOLD = 1.0
DEFAULT_DATASOURCE_TYPE = "vm"
DEFAULT_LIST_LIMIT = 20

DATASOURCE_TYPE_ALIASES = {"metrics": "vm", "logs": "vmlogs"}

DatasourceType = Literal["vm", "vmlogs", "metrics", "logs"]
TaskStatusName = Literal["pending", "running", "done", "error", "canceled"]


def normalize_datasource_type(value: str | None) -> str:
    if value is None:
        return DEFAULT_DATASOURCE_TYPE
    return DATASOURCE_TYPE_ALIASES.get(value, value)


def forwarded_auth(ctx: ToolContext, enabled: bool) -> Mapping[str, str] | None:
    """Inbound ``Authorization`` header to forward, when asked for and present."""
    if not enabled:
        return None
    value = ctx.headers.get("authorization")
    return {"Authorization": value} if value else None


class _CreateDetectionTaskArgs(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    query: str = Field(
        min_length=1,
        description="PromQL (metrics) or LogsQL (logs) query defining the series to monitor.",
    )
    model_spec: dict[str, Any] = Field(
        description="Model configuration object; must include a 'class' field."
    )
    step: str | None = Field(default=None, description="Query resolution. Default: '1s'")
    fit_window: str | None = Field(default=None, description="Training window. Default: '1d'")
    fit_every: str | None = Field(default=None, description="Retraining frequency. Default: '1d'")
    start_infer_s: float | None = Field(
        default=None, description="Inference start as Unix epoch seconds"
    )
    end_infer_s: float | None = Field(
        default=None, description="Inference end as Unix epoch seconds"
    )
    infer_every: str | None = Field(
        default=None, description="Inference cadence for exact-mode batch processing"
    )
    exact: bool = Field(default=False, description="Enable exact-mode inference for online models")
    anomaly_threshold: float | None = Field(
        default=None, description="Anomaly score threshold. Default: 1.0"
    )
    datasource_url: str | None = Field(
        default=None, description="Datasource URL; defaults to the vmanomaly endpoint"
    )
    datasource_type: DatasourceType | None = Field(
        default=None, description="'vm' (metrics) or 'vmlogs' (logs). Default: 'vm'"
    )
    tenant_id: str | None = Field(
        default=None, description="Tenant, 'accountID' or 'accountID:projectID'"
    )
    pass_auth_headers: bool = Field(
        default=False,
        description="Forward the inbound Authorization header to the datasource",
    )


class _TaskIdArgs(BaseModel):
    task_id: str = Field(
        min_length=1,
        description="task_id returned by vmanomaly_create_detection_task",
    )


class _ListTasksArgs(BaseModel):
    limit: int | None = Field(
        default=None, ge=1, le=1000, description="Maximum number of tasks. Default: 20"
    )
    status: TaskStatusName | None = Field(default=None, description="Filter by task status")


class _EmptyArgs(BaseModel):
    pass


def build_task_tools(
    client: VmanomalyClient, *, default_datasource_url: str | None = None
) -> list[Tool[Any, Any]]:
    @tool(
        args_model=_CreateDetectionTaskArgs,
        name="vmanomaly_create_detection_task",
        annotations={"title": "Create Detection Task", "destructiveHint": False},
    )
    async def create_detection_task(args: _CreateDetectionTaskArgs, ctx: ToolContext) -> str:
        """
        Create and start a new anomaly detection task. The task runs
        asynchronously; poll vmanomaly_get_task_status with the returned
        task_id. Validate the model and test the query first.
        """
        request = DetectionTaskRequest(
            query=args.query,
            model_spec=args.model_spec,
            step=args.step if args.step is not None else DEFAULT_STEP,
            fit_window=args.fit_window if args.fit_window is not None else DEFAULT_FIT_WINDOW,
            fit_every=args.fit_every if args.fit_every is not None else DEFAULT_FIT_EVERY,
            start_infer_s=args.start_infer_s,
            end_infer_s=args.end_infer_s,
            infer_every=args.infer_every,
            exact=args.exact,
            anomaly_threshold=(
                args.anomaly_threshold
                if args.anomaly_threshold is not None
                else DEFAULT_ANOMALY_THRESHOLD
            ),
            datasource_url=args.datasource_url or default_datasource_url,
            datasource_type=normalize_datasource_type(args.datasource_type),
            tenant_id=args.tenant_id,
            pass_auth_headers=args.pass_auth_headers,
        )
        try:
            created = await client.create_detection_task(
                request, forward_headers=forwarded_auth(ctx, args.pass_auth_headers)
            )
        except UpstreamError as e:
            raise upstream_failure("Failed to create detection task", e) from e
        return (
            f"Anomaly Detection Task Created:\n\n{format_json(created)}\n\n"
            f"Use vmanomaly_get_task_status with task_id '{created.task_id}' to monitor progress."
        )

    @tool(
        args_model=_TaskIdArgs,
        name="vmanomaly_get_task_status",
        annotations={"title": "Get Task Status", "readOnlyHint": True},
    )
    async def get_task_status(args: _TaskIdArgs) -> str:
        """
        Get the status of one detection task: state, progress percentage,
        timestamps and metrics. Poll this to monitor long-running tasks.
        """
        try:
            status = await client.get_task_status(args.task_id)
        except UpstreamError as e:
            raise upstream_failure("Failed to get task status", e) from e
        return f"{status_icon(status.status)} Task Status ({status.status}):\n\n{format_json(status)}"

    @tool(
        args_model=_ListTasksArgs,
        name="vmanomaly_list_tasks",
        annotations={"title": "List Tasks", "readOnlyHint": True},
    )
    async def list_tasks(args: _ListTasksArgs) -> str:
        """
        List detection tasks, optionally filtered by status. Combine with
        vmanomaly_get_task_status for details on one task.
        """
        limit = args.limit if args.limit is not None else DEFAULT_LIST_LIMIT
        try:
            tasks = await client.list_tasks(limit=limit, status=args.status)
        except UpstreamError as e:
            raise upstream_failure("Failed to list tasks", e) from e
        return f"Anomaly Detection Tasks (found {len(tasks.tasks)}):\n\n{format_json(tasks)}"

    @tool(
        args_model=_TaskIdArgs,
        name="vmanomaly_cancel_task",
        annotations={"title": "Cancel Task", "destructiveHint": True},
    )
    async def cancel_task(args: _TaskIdArgs) -> str:
        """
        Cancel a running or pending detection task. Tasks already in 'done'
        or 'error' state cannot be canceled.
        """
        try:
            result = await client.cancel_task(args.task_id)
        except UpstreamError as e:
            raise upstream_failure("Failed to cancel task", e) from e
        return (
            f"Task Canceled:\n\n{format_json(result)}\n\n"
            f"Task '{args.task_id}' has been canceled successfully."
        )

    @tool(
        args_model=_EmptyArgs,
        name="vmanomaly_get_detection_limits",
        annotations={"title": "Get Detection Limits", "readOnlyHint": True},
    )
    async def get_detection_limits(args: _EmptyArgs) -> str:
        """
        Get the maximum number of concurrent tasks, the running count and the
        available slots. Check this before creating many tasks.
        """
        _ = args
        try:
            limits = await client.get_detection_limits()
        except UpstreamError as e:
            raise upstream_failure("Failed to get detection limits", e) from e
        pct = capacity_percent(limits.running, limits.max_concurrent)
        return (
            f"Anomaly Detection System Limits:\n\n{format_json(limits)}\n\n"
            f"Capacity Usage: {pct}% ({limits.running}/{limits.max_concurrent} tasks running)"
        )

    return [
        create_detection_task,
        get_task_status,
        list_tasks,
        cancel_task,
        get_detection_limits,
    ]
