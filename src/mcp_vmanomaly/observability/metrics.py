"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Prometheus metrics for the adapter itself.

Each ``ServerMetrics`` owns a private ``CollectorRegistry`` so several
instances (one per test, for example) never collide on metric names.
"""

from __future__ import annotations

from collections.abc import Callable

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    ProcessCollector,
    generate_latest,
)

NAMESPACE = "mcp_vmanomaly"


class ServerMetrics:
    """Counters and histograms for MCP requests, tool calls and sessions."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, *, namespace: str = NAMESPACE, process: bool = True) -> None:
        self.registry = CollectorRegistry(auto_describe=True)
        if process:
            ProcessCollector(registry=self.registry)

        self.requests = Counter(
            "mcp_requests",
            "MCP JSON-RPC messages handled, by method and outcome.",
            labelnames=("method", "outcome"),
            namespace=namespace,
            registry=self.registry,
        )
        self.request_duration = Histogram(
            "mcp_request_duration_seconds",
            "Time spent handling one MCP JSON-RPC message.",
            labelnames=("method",),
            namespace=namespace,
            registry=self.registry,
        )
        self.tool_calls = Counter(
            "tool_calls",
            "Tool invocations, by tool and outcome.",
            labelnames=("tool", "outcome"),
            namespace=namespace,
            registry=self.registry,
        )
        self.tool_duration = Histogram(
            "tool_call_duration_seconds",
            "Tool execution time including the upstream request.",
            labelnames=("tool",),
            namespace=namespace,
            registry=self.registry,
        )
        self.sessions = Gauge(
            "mcp_sessions_active",
            "Open MCP sessions.",
            namespace=namespace,
            registry=self.registry,
        )
        self.server_state = Gauge(
            "server_state",
            "Lifecycle state as an ordinal (0=starting .. 4=stopped).",
            namespace=namespace,
            registry=self.registry,
        )

    def observe_request(self, method: str, outcome: str, duration_s: float) -> None:
        self.requests.labels(method, outcome).inc()
        self.request_duration.labels(method).observe(duration_s)

    def observe_tool_call(self, tool: str, ok: bool, duration_s: float) -> None:
        self.tool_calls.labels(tool, "ok" if ok else "error").inc()
        self.tool_duration.labels(tool).observe(duration_s)

    def track_sessions(self, count: Callable[[], int]) -> None:
        self.sessions.set_function(lambda: float(count()))

    def render(self) -> bytes:
        return generate_latest(self.registry)
