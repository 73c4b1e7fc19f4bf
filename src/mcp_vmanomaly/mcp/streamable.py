"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Streamable HTTP transport on a single endpoint.

- ``POST`` carries JSON-RPC messages and answers with JSON. ``initialize``
  opens a session whose id is returned in ``Mcp-Session-Id``; later posts
  name it in the same header. Posts holding only notifications get 202.
- ``GET`` opens a server-to-client event stream with periodic keep-alive
  comments.
- ``DELETE`` ends the session.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from .protocol import PARSE_ERROR, MCPProtocolHandler, is_request, jsonrpc_error
from .session import Session, SessionHub
from .sse import SSE_HEADERS, dispatch, stream_session_events

logger = logging.getLogger("mcp_vmanomaly.mcp.streamable")

SESSION_HEADER = "Mcp-Session-Id"


def _is_initialize(body: Any) -> bool:
    items = body if isinstance(body, list) else [body]
    return any(isinstance(m, dict) and m.get("method") == "initialize" for m in items)


def _unavailable() -> Response:
    return Response("Server is shutting down\n", status_code=503)


def build_streamable_router(
    handler: MCPProtocolHandler,
    hub: SessionHub,
    *,
    accepting: Callable[[], bool],
    heartbeat_interval: float,
    path: str = "/mcp",
) -> APIRouter:
    router = APIRouter()

    def _resolve(request: Request) -> tuple[Session | None, Response | None]:
        session_id = request.headers.get(SESSION_HEADER)
        if not session_id:
            return None, JSONResponse({"error": f"missing {SESSION_HEADER} header"}, status_code=400)
        session = hub.get(session_id)
        if session is None:
            return None, JSONResponse({"error": "unknown session"}, status_code=404)
        return session, None

    @router.post(path)
    async def mcp_post(request: Request):
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse(
                jsonrpc_error(None, PARSE_ERROR, "Parse error"), status_code=400
            )

        session_id = request.headers.get(SESSION_HEADER)
        headers: dict[str, str] = {}
        if _is_initialize(body):
            if not accepting():
                return _unavailable()
            session = hub.create("http", dict(request.headers))
            headers[SESSION_HEADER] = session.id
        elif session_id:
            session = hub.get(session_id)
            if session is None:
                return JSONResponse({"error": "unknown session"}, status_code=404)
            # Credentials may rotate between posts on the same session.
            session.update_headers(dict(request.headers))
        else:
            # Sessionless clients get a throwaway session per post.
            if not accepting():
                return _unavailable()
            session = Session(transport="http", headers=dict(request.headers))

        items = body if isinstance(body, list) else [body]
        response = await dispatch(handler, session, body)
        if not any(is_request(m) for m in items) or response is None:
            return Response(status_code=202, headers=headers)
        return JSONResponse(response, status_code=200, headers=headers)

    @router.get(path)
    async def mcp_stream(request: Request):
        session, error = _resolve(request)
        if error is not None:
            return error
        assert session is not None
        return StreamingResponse(
            stream_session_events(session, heartbeat_interval=heartbeat_interval),
            media_type="text/event-stream",
            headers={**SSE_HEADERS, SESSION_HEADER: session.id},
        )

    @router.delete(path)
    async def mcp_delete(request: Request):
        session, error = _resolve(request)
        if error is not None:
            return error
        assert session is not None
        hub.remove(session.id)
        return Response(status_code=200)

    return router
