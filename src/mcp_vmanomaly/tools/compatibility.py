"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

State compatibility tool.

Returns structured output (declared via an output schema) together with a
human-readable summary telling the caller which migration actions are
required before running the target version.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from ..vmanomaly import CompatibilityReport, UpstreamError, VmanomalyClient
from .core import Tool, ToolOutput, args_schema, tool
from .formatting import format_json, upstream_failure

DROP_EVERYTHING_NOTICE = "CRITICAL: All persisted state must be dropped before upgrade."


class _CheckCompatibilityArgs(BaseModel):
    version_to: str | None = Field(
        default=None,
        description="Target version to check against; defaults to the current runtime version.",
    )


class CompatibilityResult(BaseModel):
    summary: str = Field(description="Human-readable status and required actions")
    status: Literal["compatible", "incompatible", "no_state"]
    runtime_version: str
    stored_version: str | None = None
    has_state: bool
    is_compatible: bool
    drop_everything: bool = Field(description="Whether ALL state must be dropped")
    models_to_purge: list[str] = Field(default_factory=list)
    purge_reader_data: bool = False
    reason: str | None = None


def compatibility_status(has_state: bool, is_compatible: bool) -> str:
    if not has_state:
        return "no_state"
    return "compatible" if is_compatible else "incompatible"


def build_summary(result: CompatibilityResult) -> str:
    """
    Summarise a compatibility result.

    The drop-everything instruction is emitted whenever the flag is set,
    whatever the status, and replaces the per-component action list.
    """
    parts: list[str] = []
    if result.status == "no_state":
        parts.append(
            "No persisted state found (fresh install). "
            "System is ready to use with any configuration."
        )
    elif result.status == "compatible":
        parts.append(
            f"State is COMPATIBLE with runtime {result.runtime_version}. "
            "No migration actions required."
        )
    else:
        parts.append(f"State is INCOMPATIBLE with runtime {result.runtime_version}.")

    if result.drop_everything:
        parts.append(DROP_EVERYTHING_NOTICE)
    elif result.status == "incompatible":
        actions: list[str] = []
        if result.models_to_purge:
            actions.append(f"purge models: {', '.join(result.models_to_purge)}")
        if result.purge_reader_data:
            actions.append("purge reader data")
        if actions:
            parts.append(f"Required actions: {'; '.join(actions)}.")

    if result.status == "incompatible" and result.reason:
        parts.append(f"Reason: {result.reason}")
    return " ".join(parts)


def summarize_report(report: CompatibilityReport) -> CompatibilityResult:
    check = report.global_check
    assessment = report.component_assessment
    result = CompatibilityResult(
        summary="",
        status=compatibility_status(check.has_state, check.is_compatible),
        runtime_version=report.runtime_version,
        stored_version=report.stored_version,
        has_state=check.has_state,
        is_compatible=check.is_compatible,
        drop_everything=check.drop_everything,
        models_to_purge=list(assessment.models_to_purge) if assessment else [],
        purge_reader_data=assessment.should_purge_reader_data if assessment else False,
        reason=check.reason,
    )
    return result.model_copy(update={"summary": build_summary(result)})


def build_compatibility_tools(client: VmanomalyClient) -> list[Tool[Any, Any]]:
    @tool(
        args_model=_CheckCompatibilityArgs,
        name="vmanomaly_check_compatibility",
        output_schema=args_schema(CompatibilityResult),
        annotations={"title": "Check State Compatibility", "readOnlyHint": True},
    )
    async def check_compatibility(args: _CheckCompatibilityArgs) -> ToolOutput:
        """
        Check whether persisted vmanomaly state is compatible with the
        current or target runtime version. Returns the compatibility status
        and the required migration actions.
        """
        try:
            report = await client.compatibility(args.version_to)
        except UpstreamError as e:
            raise upstream_failure("Compatibility check failed", e) from e
        result = summarize_report(report)
        structured = result.model_dump(mode="json")
        return ToolOutput(
            content=[{"type": "text", "text": format_json(structured)}],
            structured=structured,
        )

    return [check_compatibility]
