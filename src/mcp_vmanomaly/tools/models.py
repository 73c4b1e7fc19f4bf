"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Model catalog tools: list model classes, fetch a class schema and validate
a model specification.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..vmanomaly import UpstreamError, VmanomalyClient
from .core import Tool, tool
from .formatting import format_json, upstream_failure

_READ_ONLY = {"readOnlyHint": True, "destructiveHint": False, "openWorldHint": False}

ModelClass = Literal[
    "zscore",
    "prophet",
    "mad",
    "holtwinters",
    "std",
    "rolling_quantile",
    "isolation_forest_univariate",
    "mad_online",
    "zscore_online",
    "quantile_online",
    "auto",
]


class _EmptyArgs(BaseModel):
    pass


class _GetModelSchemaArgs(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_class: ModelClass = Field(
        description=(
            "Model type to retrieve schema for. Use vmanomaly_list_models to "
            "see all available types first."
        )
    )


class _ValidateModelArgs(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_spec: dict[str, Any] = Field(
        description=(
            "Model configuration object to validate. Must include a 'class' "
            "field plus model-specific parameters."
        )
    )


def build_model_tools(client: VmanomalyClient) -> list[Tool[Any, Any]]:
    @tool(
        args_model=_EmptyArgs,
        name="vmanomaly_list_models",
        annotations={"title": "Vmanomaly List Models", **_READ_ONLY},
    )
    async def list_models(args: _EmptyArgs) -> str:
        """
        List all anomaly detection model types supported by vmanomaly. Use
        this first when selecting a model, then call
        vmanomaly_get_model_schema for the chosen model's parameters.
        """
        _ = args
        try:
            models = await client.list_models()
        except UpstreamError as e:
            raise upstream_failure("Failed to list models", e) from e
        return format_json(models)

    @tool(
        args_model=_GetModelSchemaArgs,
        name="vmanomaly_get_model_schema",
        annotations={"title": "Get Model Schema", **_READ_ONLY},
    )
    async def get_model_schema(args: _GetModelSchemaArgs) -> str:
        """
        Get the complete JSON schema for one anomaly detection model type:
        parameters, types, validation rules, defaults and descriptions.
        """
        try:
            schema = await client.get_model_schema(args.model_class)
        except UpstreamError as e:
            raise upstream_failure("Failed to get model schema", e) from e
        return format_json(schema)

    @tool(
        args_model=_ValidateModelArgs,
        name="vmanomaly_validate_model_config",
        annotations={"title": "Validate Model Config", **_READ_ONLY},
    )
    async def validate_model_config(args: _ValidateModelArgs) -> str:
        """
        Validate an anomaly detection model configuration before using it.
        Returns the normalized configuration or the validation errors.
        """
        try:
            validation = await client.validate_model(args.model_spec)
        except UpstreamError as e:
            raise upstream_failure("Model validation failed", e) from e
        verdict = (
            "✓ Model configuration is valid and ready to use!"
            if validation.valid
            else "✗ Model configuration is invalid. Check the errors above."
        )
        return f"Validation Result:\n{format_json(validation)}\n\n{verdict}"

    return [list_models, get_model_schema, validate_model_config]
