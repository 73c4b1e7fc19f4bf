"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

vmalert rule generation tool.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..vmanomaly import AlertRuleRequest, UpstreamError, VmanomalyClient
from .core import Tool, tool
from .formatting import upstream_failure

DEFAULT_ANOMALY_THRESHOLD = 1.0


class _GenerateAlertRuleArgs(BaseModel):
    step: str = Field(min_length=1, description="Query step/resolution (e.g. '1s', '1m')")
    query: str = Field(min_length=1, description="PromQL query to include in the alert description")
    anomaly_threshold: float | None = Field(
        default=None, description="Anomaly score threshold (default: 1.0)"
    )
    rule_name: str | None = Field(default=None, description="Custom alert rule name")
    group_name: str | None = Field(
        default=None, description="vmalert rule group name (default: 'VMAnomalyAlerts')"
    )
    rule_description: str | None = Field(default=None, description="Custom alert summary")
    infer_every: str | None = Field(
        default=None, description="Inference cadence (defaults to step value)"
    )


def build_alert_tools(client: VmanomalyClient) -> list[Tool[Any, Any]]:
    @tool(
        args_model=_GenerateAlertRuleArgs,
        name="vmanomaly_generate_alert_rule",
        annotations={"title": "Generate Alert Rule", "readOnlyHint": True},
    )
    async def generate_alert_rule(args: _GenerateAlertRuleArgs) -> str:
        """
        Generate a vmalert rule YAML that fires when anomaly_score exceeds
        the threshold. Use this to alert on anomalies found by vmanomaly.
        """
        request = AlertRuleRequest(
            step=args.step,
            query=args.query,
            anomaly_threshold=(
                args.anomaly_threshold
                if args.anomaly_threshold is not None
                else DEFAULT_ANOMALY_THRESHOLD
            ),
            rule_name=args.rule_name,
            group_name=args.group_name,
            rule_description=args.rule_description,
            infer_every=args.infer_every,
        )
        try:
            yaml_text = await client.generate_alert_rule(request)
        except UpstreamError as e:
            raise upstream_failure("Failed to generate alert rule", e) from e
        return (
            f"Generated VMAlert Rule:\n\n```yaml\n{yaml_text}\n```\n\n"
            "Save this to a .yaml file and configure vmalert to load it."
        )

    return [generate_alert_rule]
