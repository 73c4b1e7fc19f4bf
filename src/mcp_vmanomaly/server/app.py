"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

FastAPI application for the network transports.

Every network mode shares the liveness, readiness and metrics routes and
mounts exactly one MCP transport router.
"""

from __future__ import annotations

from fastapi import APIRouter, FastAPI
from fastapi.responses import PlainTextResponse, Response

from ..config import ServerMode
from ..mcp import MCPProtocolHandler, SessionHub, build_sse_router, build_streamable_router
from ..observability import ServerMetrics
from .state import ServerStateCell

_TEXT_HEADERS = {"X-Content-Type-Options": "nosniff"}


def build_health_router(state: ServerStateCell, metrics: ServerMetrics) -> APIRouter:
    router = APIRouter()

    @router.get("/health/liveness")
    async def liveness():
        return PlainTextResponse("OK\n", headers=_TEXT_HEADERS)

    @router.get("/health/readiness")
    async def readiness():
        if not state.ready:
            return PlainTextResponse("Not ready\n", status_code=503, headers=_TEXT_HEADERS)
        return PlainTextResponse("Ready\n", headers=_TEXT_HEADERS)

    @router.get("/metrics")
    async def metrics_endpoint():
        return Response(metrics.render(), media_type=metrics.content_type)

    return router


def create_app(
    *,
    mode: ServerMode,
    handler: MCPProtocolHandler,
    hub: SessionHub,
    state: ServerStateCell,
    metrics: ServerMetrics,
    heartbeat_interval_s: float,
    name: str = "mcp-vmanomaly",
    version: str = "0.0.0",
) -> FastAPI:
    """Build the app for ``mode``; new sessions are accepted only while ready."""
    if mode is ServerMode.HTTP:
        transport = build_streamable_router(
            handler,
            hub,
            accepting=lambda: state.ready,
            heartbeat_interval=heartbeat_interval_s,
        )
    elif mode is ServerMode.SSE:
        transport = build_sse_router(
            handler,
            hub,
            accepting=lambda: state.ready,
            heartbeat_interval=heartbeat_interval_s,
        )
    else:
        raise ValueError(f"{mode.value} mode has no HTTP application")

    app = FastAPI(
        title=name,
        version=version,
        description="MCP server for vmanomaly",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.include_router(build_health_router(state, metrics))
    app.include_router(transport)
    return app
