from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from mcp_vmanomaly.config import ServerMode
from mcp_vmanomaly.mcp import MCPProtocolHandler, SessionHub
from mcp_vmanomaly.observability import ServerMetrics
from mcp_vmanomaly.server import ServerState, ServerStateCell, create_app
from mcp_vmanomaly.tools import ToolRegistry


def build(mode: ServerMode = ServerMode.HTTP):
    state = ServerStateCell()
    metrics = ServerMetrics(process=False)
    app = create_app(
        mode=mode,
        handler=MCPProtocolHandler(registry=ToolRegistry(), server_name="t", server_version="0"),
        hub=SessionHub(),
        state=state,
        metrics=metrics,
        heartbeat_interval_s=30.0,
    )
    return app, state, metrics


def test_liveness_is_always_ok():
    app, state, _ = build()

    with TestClient(app) as client:
        before = client.get("/health/liveness")
        state.advance(ServerState.DRAINING)
        during = client.get("/health/liveness")

    assert before.status_code == during.status_code == 200
    assert before.text == "OK\n"
    assert before.headers["x-content-type-options"] == "nosniff"


def test_readiness_follows_state():
    app, state, _ = build(ServerMode.SSE)

    with TestClient(app) as client:
        starting = client.get("/health/readiness")
        state.advance(ServerState.LISTENING)
        listening = client.get("/health/readiness")
        state.advance(ServerState.DRAINING)
        draining = client.get("/health/readiness")

    assert starting.status_code == 503
    assert listening.status_code == 200
    assert listening.text == "Ready\n"
    assert draining.status_code == 503
    assert draining.text == "Not ready\n"


def test_metrics_endpoint_exposes_prometheus_text():
    app, state, metrics = build()
    metrics.server_state.set(int(ServerState.LISTENING))

    with TestClient(app) as client:
        resp = client.get("/metrics")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "mcp_vmanomaly_server_state 1.0" in resp.text


def test_stdio_mode_has_no_http_app():
    with pytest.raises(ValueError):
        build(ServerMode.STDIO)
