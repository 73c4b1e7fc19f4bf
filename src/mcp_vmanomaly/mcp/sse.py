"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

HTTP+SSE transport.

``GET /sse`` opens an event stream whose first event, ``endpoint``, names
the URL to post messages to. ``POST /message?sessionId=...`` accepts one
JSON-RPC message (or batch) with 202 and publishes the response on that
session's stream as a ``message`` event.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from .protocol import PARSE_ERROR, MCPProtocolHandler, jsonrpc_error
from .session import Session, SessionHub

logger = logging.getLogger("mcp_vmanomaly.mcp.sse")

HEARTBEAT_COMMENT = ": heartbeat\n\n"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(data: Any, *, event: str | None = None) -> str:
    payload = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False)
    lines = [f"event: {event}"] if event else []
    lines.extend(f"data: {chunk}" for chunk in payload.split("\n"))
    return "\n".join(lines) + "\n\n"


async def stream_session_events(
    session: Session,
    *,
    heartbeat_interval: float,
    preamble: Iterable[str] = (),
) -> AsyncIterator[str]:
    """
    Yield SSE frames for ``session`` until it is closed.

    A heartbeat comment is sent whenever no message arrived for
    ``heartbeat_interval`` seconds; zero disables heartbeats.
    """
    session.streams += 1
    try:
        for frame in preamble:
            yield frame
        while True:
            try:
                if heartbeat_interval > 0:
                    message = await asyncio.wait_for(session.queue.get(), heartbeat_interval)
                else:
                    message = await session.queue.get()
            except asyncio.TimeoutError:
                yield HEARTBEAT_COMMENT
                continue
            if message is None:
                return
            yield format_sse(message, event="message")
    finally:
        session.streams -= 1


async def dispatch(
    handler: MCPProtocolHandler, session: Session, body: Any
) -> dict[str, Any] | list[dict[str, Any]] | None:
    """Handle a message or batch for ``session``; ``None`` when nothing to send."""
    if isinstance(body, list):
        responses = [
            r
            for r in await asyncio.gather(*(handler.handle_message(m, session) for m in body))
            if r is not None
        ]
        return responses or None
    return await handler.handle_message(body, session)


def build_sse_router(
    handler: MCPProtocolHandler,
    hub: SessionHub,
    *,
    accepting: Callable[[], bool],
    heartbeat_interval: float,
    sse_path: str = "/sse",
    message_path: str = "/message",
) -> APIRouter:
    router = APIRouter()

    @router.get(sse_path)
    async def sse_endpoint(request: Request):
        if not accepting():
            return Response("Server is shutting down\n", status_code=503)

        session = hub.create("sse", dict(request.headers))
        endpoint = f"{message_path}?sessionId={session.id}"

        async def event_stream() -> AsyncIterator[str]:
            try:
                async for frame in stream_session_events(
                    session,
                    heartbeat_interval=heartbeat_interval,
                    preamble=[format_sse(endpoint, event="endpoint")],
                ):
                    yield frame
            finally:
                hub.remove(session.id)

        return StreamingResponse(
            event_stream(), media_type="text/event-stream", headers=SSE_HEADERS
        )

    @router.post(message_path)
    async def message_endpoint(request: Request, background: BackgroundTasks):
        session_id = request.query_params.get("sessionId")
        if not session_id:
            return JSONResponse({"error": "missing sessionId"}, status_code=400)
        session = hub.get(session_id)
        if session is None:
            return JSONResponse({"error": "unknown session"}, status_code=404)

        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(
                jsonrpc_error(None, PARSE_ERROR, "Parse error"), status_code=400
            )

        async def _reply() -> None:
            response = await dispatch(handler, session, body)
            if response is not None:
                session.publish(response)

        background.add_task(_reply)
        return Response("Accepted", status_code=202)

    return router
