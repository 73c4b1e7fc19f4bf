"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Configuration tools: validate a full vmanomaly config and generate one
from a query plus model specification.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..vmanomaly import ConfigGenerationRequest, UpstreamError, VmanomalyClient
from .core import Tool, tool
from .formatting import format_json, upstream_failure

DEFAULT_FIT_WINDOW = "1d"
DEFAULT_FIT_EVERY = "1d"


class _ValidateConfigArgs(BaseModel):
    config: dict[str, Any] = Field(
        description=(
            "Complete vmanomaly configuration object with 'reader', "
            "'scheduler', 'models' and 'writer' sections."
        )
    )


class _GenerateConfigArgs(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    query: str = Field(min_length=1, description="PromQL query to monitor for anomalies")
    step: str = Field(min_length=1, description="Query step/resolution (e.g. '1m', '5m')")
    datasource_url: str | None = Field(
        default=None,
        description="VictoriaMetrics datasource URL; defaults to the vmanomaly endpoint",
    )
    model_spec: dict[str, Any] = Field(
        description="Model specification object (must include a 'class' field)"
    )
    tenant_id: str | None = Field(default=None, description="Tenant ID for multi-tenancy")
    fit_window: str | None = Field(default=None, description="Model fit window (default '1d')")
    fit_every: str | None = Field(default=None, description="Retraining frequency (default '1d')")
    infer_every: str | None = Field(default=None, description="Inference cadence")


def build_config_tools(
    client: VmanomalyClient, *, default_datasource_url: str | None = None
) -> list[Tool[Any, Any]]:
    @tool(
        args_model=_ValidateConfigArgs,
        name="vmanomaly_validate_config",
        annotations={"title": "Validate Config", "readOnlyHint": True},
    )
    async def validate_config(args: _ValidateConfigArgs) -> str:
        """
        Validate a complete vmanomaly configuration. Returns the validation
        result with the normalized config or error details.
        """
        try:
            validation = await client.validate_config(args.config)
        except UpstreamError as e:
            raise upstream_failure("Config validation failed", e) from e
        verdict = (
            "Configuration is valid and ready to use!"
            if validation.is_valid
            else "Configuration is invalid. Check the errors above."
        )
        return f"Validation Result:\n{format_json(validation)}\n\n{verdict}"

    @tool(
        args_model=_GenerateConfigArgs,
        name="vmanomaly_generate_config",
        annotations={"title": "Generate Config", "readOnlyHint": True},
    )
    async def generate_config(args: _GenerateConfigArgs) -> str:
        """
        Generate a complete vmanomaly YAML configuration for one query and
        model. Fit window and fit cadence default to one day.
        """
        datasource_url = args.datasource_url or default_datasource_url
        if not datasource_url:
            raise ValueError("datasource_url is required when no default endpoint is configured")
        request = ConfigGenerationRequest(
            query=args.query,
            step=args.step,
            datasource_url=datasource_url,
            model_spec=args.model_spec,
            tenant_id=args.tenant_id,
            fit_window=args.fit_window if args.fit_window is not None else DEFAULT_FIT_WINDOW,
            fit_every=args.fit_every if args.fit_every is not None else DEFAULT_FIT_EVERY,
            infer_every=args.infer_every,
        )
        try:
            yaml_text = await client.generate_config(request)
        except UpstreamError as e:
            raise upstream_failure("Failed to generate config", e) from e
        return f"Generated vmanomaly Configuration:\n\n```yaml\n{yaml_text}\n```"

    return [validate_config, generate_config]
