"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Upstream client core for the vmanomaly HTTP API.
"""

from .client import (
    DEFAULT_TASK_LIST_LIMIT,
    DEFAULT_TIMEOUT_S,
    RequestSpec,
    ResponseShape,
    VmanomalyClient,
    VmanomalyClientConfig,
)
from .errors import (
    CancelledOrDeadlineExceeded,
    DecodeFailure,
    HTTPStatusFailure,
    NetworkFailure,
    UpstreamError,
)
from .types import (
    AlertRuleRequest,
    CompatibilityIssue,
    CompatibilityReport,
    ComponentAssessment,
    ConfigGenerationRequest,
    ConfigValidation,
    DetectionLimits,
    DetectionTaskRequest,
    GlobalCheck,
    ModelsList,
    ModelValidation,
    QueryRequest,
    TaskCancellation,
    TaskCreated,
    TaskList,
    TaskStatus,
    VersionRequirement,
)

__all__ = [
    "DEFAULT_TASK_LIST_LIMIT",
    "DEFAULT_TIMEOUT_S",
    "RequestSpec",
    "ResponseShape",
    "VmanomalyClient",
    "VmanomalyClientConfig",
    "UpstreamError",
    "NetworkFailure",
    "CancelledOrDeadlineExceeded",
    "HTTPStatusFailure",
    "DecodeFailure",
    "AlertRuleRequest",
    "CompatibilityIssue",
    "CompatibilityReport",
    "ComponentAssessment",
    "ConfigGenerationRequest",
    "ConfigValidation",
    "DetectionLimits",
    "DetectionTaskRequest",
    "GlobalCheck",
    "ModelsList",
    "ModelValidation",
    "QueryRequest",
    "TaskCancellation",
    "TaskCreated",
    "TaskList",
    "TaskStatus",
    "VersionRequirement",
]
