"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request and response models for the vmanomaly HTTP API.

Optional request fields are ``None`` when absent and are omitted from the
wire; explicit zero values are sent as given.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Response(BaseModel):
    """Backend payloads may grow new fields; keep them instead of failing."""

    model_config = ConfigDict(extra="allow", protected_namespaces=())


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid", protected_namespaces=())

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ModelsList(_Response):
    models: list[str] = Field(default_factory=list)


class ModelValidation(_Response):
    valid: bool
    model_spec: dict[str, Any] | None = None
    error: Any = None


class ConfigValidation(_Response):
    is_valid: bool
    normalized_config: dict[str, Any] | None = None
    errors: list[Any] | None = None


# ---------------------------------------------------------------------------
# Generated YAML
# ---------------------------------------------------------------------------


class ConfigGenerationRequest(_Request):
    """Query parameters for ``/api/vmanomaly/config.yaml``."""

    query: str
    step: str
    datasource_url: str
    fit_window: str | None = None
    fit_every: str | None = None
    infer_every: str | None = None
    tenant_id: str | None = None
    model_spec: dict[str, Any] | None = None

    def to_wire(self) -> dict[str, Any]:
        params = super().to_wire()
        # Query strings carry the model spec JSON-encoded.
        if "model_spec" in params:
            params["model_spec"] = json.dumps(params["model_spec"], separators=(",", ":"))
        return params


class AlertRuleRequest(_Request):
    """Query parameters for ``/api/vmalert/rule.yaml``."""

    step: str
    query: str
    anomaly_threshold: float | None = None
    rule_name: str | None = None
    group_name: str | None = None
    rule_description: str | None = None
    infer_every: str | None = None


# ---------------------------------------------------------------------------
# Detection tasks
# ---------------------------------------------------------------------------


class DetectionTaskRequest(_Request):
    """JSON body for task creation. Values are sent exactly as provided."""

    query: str
    model_spec: dict[str, Any]
    step: str | None = None
    fit_window: str | None = None
    fit_every: str | None = None
    start_infer_s: float | None = None
    end_infer_s: float | None = None
    infer_every: str | None = None
    exact: bool = False
    anomaly_threshold: float | None = None
    datasource_url: str | None = None
    datasource_type: str | None = None
    tenant_id: str | None = None
    pass_auth_headers: bool = False


class TaskCreated(_Response):
    task_id: str
    status: str | None = None


class TaskStatus(_Response):
    task_id: str
    status: str
    progress: int = 0
    message: str | None = None
    updated_at: str | None = None
    metrics: dict[str, Any] = Field(default_factory=dict)


class TaskList(_Response):
    tasks: list[TaskStatus] = Field(default_factory=list)


class TaskCancellation(_Response):
    canceled: bool


class DetectionLimits(_Response):
    max_concurrent: int
    running: int
    available: int


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class QueryRequest(_Request):
    query: str
    step: str | None = None
    datasource_type: str | None = None
    start: float | None = None
    end: float | None = None
    tenant_id: str | None = None
    nocache: str | None = None
    datasource_url: str | None = None
    pass_auth_headers: bool = False


# ---------------------------------------------------------------------------
# Compatibility
# ---------------------------------------------------------------------------


class GlobalCheck(_Response):
    has_state: bool = False
    is_compatible: bool = True
    drop_everything: bool = False
    reason: str | None = None


class VersionRequirement(_Response):
    runtime_version: str | None = None
    origin_version: str | None = None
    min_state_version: str | None = None
    description: str | None = None


class CompatibilityIssue(_Response):
    component: str
    subcomponent: str | None = None
    requirement: VersionRequirement | None = None
    affected_entities: list[str] = Field(default_factory=list)


class ComponentAssessment(_Response):
    issues: list[CompatibilityIssue] = Field(default_factory=list)
    models_to_purge: list[str] = Field(default_factory=list)
    should_purge_reader_data: bool = False


class CompatibilityReport(_Response):
    runtime_version: str
    stored_version: str | None = None
    global_check: GlobalCheck
    component_assessment: ComponentAssessment | None = None
