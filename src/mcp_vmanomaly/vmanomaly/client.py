"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

HTTP client for the vmanomaly API.

``VmanomalyClient`` is the only component that talks to the backend. Every
call goes through ``execute`` which applies the shared header and timeout
policy and classifies failures into the ``UpstreamError`` taxonomy:

- transport problems (connect, DNS, fixed timeout) -> ``NetworkFailure``
- caller deadline expiry -> ``CancelledOrDeadlineExceeded``
- non-2xx responses -> ``HTTPStatusFailure`` (status and raw body kept)
- 2xx responses that do not decode -> ``DecodeFailure``

No retries are performed here; task creation is not idempotent upstream.
Cancelling the calling task aborts the in-flight request and propagates
``asyncio.CancelledError`` unchanged.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from .errors import (
    CancelledOrDeadlineExceeded,
    DecodeFailure,
    HTTPStatusFailure,
    NetworkFailure,
)
from .types import (
    AlertRuleRequest,
    CompatibilityReport,
    ConfigGenerationRequest,
    ConfigValidation,
    DetectionLimits,
    DetectionTaskRequest,
    ModelsList,
    ModelValidation,
    QueryRequest,
    TaskCancellation,
    TaskCreated,
    TaskList,
    TaskStatus,
)

logger = logging.getLogger("mcp_vmanomaly.vmanomaly")

DEFAULT_TIMEOUT_S = 30.0
DEFAULT_TASK_LIST_LIMIT = 20

M = TypeVar("M", bound=BaseModel)


class ResponseShape(str, enum.Enum):
    """Expected decoding of a successful response."""

    OBJECT = "object"
    MODEL = "model"
    TEXT = "text"


@dataclass(frozen=True, slots=True)
class VmanomalyClientConfig:
    """
    Immutable connection settings for the backend.

    Attributes:
        base_url: Backend base address, e.g. ``http://vmanomaly:8490``.
        bearer_token: Optional credential sent as ``Authorization: Bearer``.
        headers: Custom headers attached to every request.
        timeout_s: Fixed upper bound for one request, in seconds.
    """

    base_url: str
    bearer_token: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout_s: float = DEFAULT_TIMEOUT_S

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url is required")
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


@dataclass(frozen=True, slots=True)
class RequestSpec:
    """
    One outbound call.

    ``forward_headers`` opts out of the configured bearer credential: the
    given headers (typically the inbound session's ``Authorization``) are
    sent instead. Custom headers are attached either way.
    """

    operation: str
    method: str
    path: str
    params: Mapping[str, Any] | None = None
    json_body: Any = None
    expect: ResponseShape = ResponseShape.OBJECT
    response_model: type[BaseModel] | None = None
    forward_headers: Mapping[str, str] | None = None


class VmanomalyClient:
    """Async client exposing one method per vmanomaly API operation."""

    def __init__(
        self,
        config: VmanomalyClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_s,
            transport=transport,
        )

    @property
    def config(self) -> VmanomalyClientConfig:
        return self._config

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "VmanomalyClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ''''''''''''''''''''
    # Request execution
    # ''''''''''''''''''''

    def _headers(self, spec: RequestSpec) -> dict[str, str]:
        headers: dict[str, str] = {}
        if spec.forward_headers is None and self._config.bearer_token:
            headers["Authorization"] = f"Bearer {self._config.bearer_token}"
        headers.update(self._config.headers)
        if spec.forward_headers is not None:
            headers.update(spec.forward_headers)
        return headers

    async def _send(self, spec: RequestSpec) -> httpx.Response:
        request = self._http.build_request(
            spec.method,
            spec.path,
            params=dict(spec.params) if spec.params else None,
            json=spec.json_body,
            headers=self._headers(spec),
        )
        return await self._http.send(request)

    async def execute(self, spec: RequestSpec, *, timeout_s: float | None = None) -> Any:
        """
        Send ``spec`` and decode the response according to ``spec.expect``.

        ``timeout_s`` is the caller's remaining deadline. The effective bound
        is the smaller of it and the configured fixed timeout.
        """
        if timeout_s is not None and timeout_s <= 0:
            raise CancelledOrDeadlineExceeded(
                f"{spec.operation}: deadline exceeded before the request was sent",
                operation=spec.operation,
            )

        caller_bound = timeout_s is not None and timeout_s < self._config.timeout_s
        bound = timeout_s if caller_bound else self._config.timeout_s
        started = time.monotonic()

        try:
            response = await asyncio.wait_for(self._send(spec), timeout=bound)
        except asyncio.TimeoutError as exc:
            if caller_bound:
                raise CancelledOrDeadlineExceeded(
                    f"{spec.operation}: deadline of {bound:g}s exceeded",
                    operation=spec.operation,
                ) from exc
            raise NetworkFailure(
                f"{spec.operation}: request timed out after {bound:g}s",
                operation=spec.operation,
            ) from exc
        except httpx.TimeoutException as exc:
            raise NetworkFailure(
                f"{spec.operation}: request timed out: {exc}",
                operation=spec.operation,
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkFailure(
                f"{spec.operation}: request failed: {exc}",
                operation=spec.operation,
            ) from exc

        logger.debug(
            "%s %s -> %d (%.1f ms)",
            spec.method,
            spec.path,
            response.status_code,
            (time.monotonic() - started) * 1000,
        )
        return self._decode(spec, response)

    def _decode(self, spec: RequestSpec, response: httpx.Response) -> Any:
        body = response.text
        if not response.is_success:
            raise HTTPStatusFailure(response.status_code, body, operation=spec.operation)

        if spec.expect is ResponseShape.TEXT:
            return body

        try:
            payload = response.json()
        except ValueError as exc:
            raise DecodeFailure(body, exc, operation=spec.operation) from exc

        if spec.expect is ResponseShape.MODEL:
            if spec.response_model is None:
                raise ValueError(f"{spec.operation}: response_model is required")
            try:
                return spec.response_model.model_validate(payload)
            except ValidationError as exc:
                raise DecodeFailure(body, exc, operation=spec.operation) from exc

        if not isinstance(payload, dict):
            raise DecodeFailure(
                body,
                TypeError(f"expected a JSON object, got {type(payload).__name__}"),
                operation=spec.operation,
            )
        return payload

    async def _model(
        self,
        model: type[M],
        *,
        operation: str,
        method: str,
        path: str,
        timeout_s: float | None,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
        forward_headers: Mapping[str, str] | None = None,
    ) -> M:
        spec = RequestSpec(
            operation=operation,
            method=method,
            path=path,
            params=params,
            json_body=json_body,
            expect=ResponseShape.MODEL,
            response_model=model,
            forward_headers=forward_headers,
        )
        return await self.execute(spec, timeout_s=timeout_s)

    # ''''''''''''''''
    # Service info
    # ''''''''''''''''

    async def get_health(self, *, timeout_s: float | None = None) -> dict[str, Any]:
        spec = RequestSpec(operation="get_health", method="GET", path="/health")
        return await self.execute(spec, timeout_s=timeout_s)

    async def get_build_info(self, *, timeout_s: float | None = None) -> dict[str, Any]:
        spec = RequestSpec(
            operation="get_build_info", method="GET", path="/api/v1/status/buildinfo"
        )
        return await self.execute(spec, timeout_s=timeout_s)

    async def get_metrics(self, *, timeout_s: float | None = None) -> str:
        """Return the backend's self-monitoring metrics in Prometheus text format."""
        spec = RequestSpec(
            operation="get_metrics",
            method="GET",
            path="/metrics",
            expect=ResponseShape.TEXT,
        )
        return await self.execute(spec, timeout_s=timeout_s)

    # ''''''''''''''''
    # Models
    # ''''''''''''''''

    async def list_models(self, *, timeout_s: float | None = None) -> ModelsList:
        return await self._model(
            ModelsList,
            operation="list_models",
            method="GET",
            path="/api/v1/models",
            timeout_s=timeout_s,
        )

    async def get_model_schema(
        self, model_class: str, *, timeout_s: float | None = None
    ) -> dict[str, Any]:
        spec = RequestSpec(
            operation="get_model_schema",
            method="GET",
            path="/api/v1/model/schema",
            params={"model_class": model_class},
        )
        return await self.execute(spec, timeout_s=timeout_s)

    async def validate_model(
        self, model_spec: Mapping[str, Any], *, timeout_s: float | None = None
    ) -> ModelValidation:
        return await self._model(
            ModelValidation,
            operation="validate_model",
            method="POST",
            path="/api/v1/model/validate",
            json_body=dict(model_spec),
            timeout_s=timeout_s,
        )

    async def validate_config(
        self, config: Mapping[str, Any], *, timeout_s: float | None = None
    ) -> ConfigValidation:
        return await self._model(
            ConfigValidation,
            operation="validate_config",
            method="POST",
            path="/api/v1/config/validate",
            json_body=dict(config),
            timeout_s=timeout_s,
        )

    # ''''''''''''''''
    # YAML generation
    # ''''''''''''''''

    async def generate_config(
        self, request: ConfigGenerationRequest, *, timeout_s: float | None = None
    ) -> str:
        spec = RequestSpec(
            operation="generate_config",
            method="GET",
            path="/api/vmanomaly/config.yaml",
            params=request.to_wire(),
            expect=ResponseShape.TEXT,
        )
        return await self.execute(spec, timeout_s=timeout_s)

    async def generate_alert_rule(
        self, request: AlertRuleRequest, *, timeout_s: float | None = None
    ) -> str:
        spec = RequestSpec(
            operation="generate_alert_rule",
            method="GET",
            path="/api/vmalert/rule.yaml",
            params=request.to_wire(),
            expect=ResponseShape.TEXT,
        )
        return await self.execute(spec, timeout_s=timeout_s)

    # ''''''''''''''''
    # Detection tasks
    # ''''''''''''''''

    async def create_detection_task(
        self,
        request: DetectionTaskRequest,
        *,
        forward_headers: Mapping[str, str] | None = None,
        timeout_s: float | None = None,
    ) -> TaskCreated:
        return await self._model(
            TaskCreated,
            operation="create_detection_task",
            method="POST",
            path="/api/v1/anomaly_detection/tasks",
            json_body=request.to_wire(),
            forward_headers=forward_headers,
            timeout_s=timeout_s,
        )

    async def get_task_status(
        self, task_id: str, *, timeout_s: float | None = None
    ) -> TaskStatus:
        return await self._model(
            TaskStatus,
            operation="get_task_status",
            method="GET",
            path=f"/api/v1/anomaly_detection/tasks/{quote(task_id, safe='')}",
            timeout_s=timeout_s,
        )

    async def list_tasks(
        self,
        limit: int = DEFAULT_TASK_LIST_LIMIT,
        status: str | None = None,
        *,
        timeout_s: float | None = None,
    ) -> TaskList:
        params: dict[str, Any] = {"limit": limit}
        if status is not None:
            params["status"] = status
        return await self._model(
            TaskList,
            operation="list_tasks",
            method="GET",
            path="/api/v1/anomaly_detection/tasks",
            params=params,
            timeout_s=timeout_s,
        )

    async def cancel_task(
        self, task_id: str, *, timeout_s: float | None = None
    ) -> TaskCancellation:
        return await self._model(
            TaskCancellation,
            operation="cancel_task",
            method="DELETE",
            path=f"/api/v1/anomaly_detection/tasks/{quote(task_id, safe='')}",
            timeout_s=timeout_s,
        )

    async def get_detection_limits(
        self, *, timeout_s: float | None = None
    ) -> DetectionLimits:
        return await self._model(
            DetectionLimits,
            operation="get_detection_limits",
            method="GET",
            path="/api/v1/anomaly_detection/limits",
            timeout_s=timeout_s,
        )

    # ''''''''''''''''
    # Query / compatibility
    # ''''''''''''''''

    async def query(
        self,
        request: QueryRequest,
        *,
        forward_headers: Mapping[str, str] | None = None,
        timeout_s: float | None = None,
    ) -> dict[str, Any]:
        spec = RequestSpec(
            operation="query",
            method="POST",
            path="/api/v1/query",
            json_body=request.to_wire(),
            forward_headers=forward_headers,
        )
        return await self.execute(spec, timeout_s=timeout_s)

    async def compatibility(
        self, version_to: str | None = None, *, timeout_s: float | None = None
    ) -> CompatibilityReport:
        params = {"version_to": version_to} if version_to is not None else None
        return await self._model(
            CompatibilityReport,
            operation="compatibility",
            method="GET",
            path="/api/v1/compatibility",
            params=params,
            timeout_s=timeout_s,
        )
