"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Protocol-layer helpers for MCP JSON-RPC request handling.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from typing import Any

from ..docs import DocNotFoundError, DocsIndex
from ..observability import ServerMetrics
from ..tools import ToolContext, ToolOutput, ToolRegistry
from ..tools.core.errors import ToolNotFoundError
from .session import Session

logger = logging.getLogger("mcp_vmanomaly.mcp")

MCP_PROTOCOL_VERSION = "2025-03-26"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")

# Standard JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
RESOURCE_NOT_FOUND = -32002

# Methods recorded under their own metric label; anything else is "unknown".
KNOWN_METHODS = frozenset(
    {
        "initialize",
        "ping",
        "tools/list",
        "tools/call",
        "resources/list",
        "resources/read",
        "notifications/initialized",
        "notifications/cancelled",
    }
)


class ProtocolError(Exception):
    """A request failed with a specific JSON-RPC error code."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


def jsonrpc_response(id: Any, result: Any) -> dict[str, Any]:
    """Build a JSON-RPC 2.0 success response."""
    return {"jsonrpc": "2.0", "id": id, "result": result}


def jsonrpc_error(
    id: Any,
    code: int,
    message: str,
    data: Any = None,
) -> dict[str, Any]:
    """Build a JSON-RPC 2.0 error response."""
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": id, "error": error}


def is_request(message: Any) -> bool:
    """True for messages that expect a response (they carry an ``id``)."""
    return isinstance(message, dict) and "method" in message and message.get("id") is not None


class MCPProtocolHandler:
    """
    Handles MCP methods and JSON-RPC envelope validation.

    This class keeps protocol and tool-execution behavior independent from
    transport concerns so stdio, streamable HTTP and SSE share it. Tool
    failures come back as ``isError`` results; unknown or disabled tools are
    reported as ``INVALID_PARAMS``. Resources are served from ``docs`` when
    one is given.
    """

    def __init__(
        self,
        *,
        registry: ToolRegistry,
        server_name: str,
        server_version: str,
        instructions: str | None = None,
        docs: DocsIndex | None = None,
        metrics: ServerMetrics | None = None,
    ) -> None:
        self._registry = registry
        self._server_name = server_name
        self._server_version = server_version
        self._instructions = instructions
        self._docs = docs
        self._metrics = metrics

    @property
    def resources_enabled(self) -> bool:
        return self._docs is not None

    async def handle_message(
        self,
        message: Any,
        session: Session | None = None,
    ) -> dict[str, Any] | None:
        """Route one JSON-RPC 2.0 message to the appropriate MCP method."""
        if not isinstance(message, dict):
            return jsonrpc_error(None, INVALID_REQUEST, "Invalid Request")

        jsonrpc = message.get("jsonrpc")
        if jsonrpc != "2.0":
            return jsonrpc_error(
                message.get("id"),
                INVALID_REQUEST,
                "Invalid JSON-RPC version",
            )

        method = message.get("method")
        params = message.get("params") or {}
        msg_id = message.get("id")

        if not method:
            # Responses from the client (no method) need no reply.
            if "result" in message or "error" in message:
                return None
            return jsonrpc_error(msg_id, INVALID_REQUEST, "Missing method")
        if not isinstance(params, dict):
            return jsonrpc_error(msg_id, INVALID_PARAMS, "'params' must be an object")

        is_notification = msg_id is None
        started = time.monotonic()
        outcome = "ok"

        try:
            if method == "initialize":
                result = self.handle_initialize(params, session)
            elif method == "ping":
                result = {}
            elif method == "tools/list":
                result = self.handle_tools_list(params)
            elif method == "tools/call":
                result = await self._run_tracked(msg_id, session, self.handle_tools_call(params, session))
                if result is None:
                    outcome = "cancelled"
                    return None
            elif method == "resources/list" and self.resources_enabled:
                result = self.handle_resources_list(params)
            elif method == "resources/read" and self.resources_enabled:
                result = self.handle_resources_read(params)
            elif method == "notifications/initialized":
                if session is not None:
                    session.initialized = True
                result = {}
            elif method == "notifications/cancelled":
                self.handle_cancelled(params, session)
                result = {}
            else:
                outcome = "not_found"
                if is_notification:
                    return None
                return jsonrpc_error(
                    msg_id,
                    METHOD_NOT_FOUND,
                    f"Method not found: {method}",
                )

            if is_notification:
                return None
            return jsonrpc_response(msg_id, result)
        except ProtocolError as exc:
            outcome = "error"
            return jsonrpc_error(msg_id, exc.code, exc.message, exc.data)
        except Exception as exc:
            outcome = "error"
            logger.exception("Error handling MCP method %s", method)
            return jsonrpc_error(msg_id, INTERNAL_ERROR, str(exc))
        finally:
            if self._metrics is not None:
                known = isinstance(method, str) and method in KNOWN_METHODS
                self._metrics.observe_request(
                    method if known else "unknown", outcome, time.monotonic() - started
                )

    async def _run_tracked(self, msg_id: Any, session: Session | None, coro: Any) -> Any:
        """
        Run ``coro`` as a child task registered under ``msg_id``.

        Returns ``None`` when the client cancelled the request through
        ``notifications/cancelled``; cancellation of the caller itself
        propagates and cancels the child.
        """
        if session is None or msg_id is None:
            return await coro

        task = asyncio.ensure_future(coro)
        session.track(msg_id, task)
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            session.untrack(msg_id)

        if task.cancelled():
            logger.info("Request %r cancelled by client", msg_id)
            return None
        return task.result()

    def handle_initialize(
        self, params: dict[str, Any], session: Session | None = None
    ) -> dict[str, Any]:
        """Handle ``initialize`` and return server capabilities."""
        requested = params.get("protocolVersion")
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else MCP_PROTOCOL_VERSION
        if session is not None:
            logger.info(
                "Session %s initialized by %s (protocol %s)",
                session.id,
                (params.get("clientInfo") or {}).get("name", "unknown client"),
                version,
            )
        capabilities: dict[str, Any] = {"tools": {"listChanged": False}}
        if self.resources_enabled:
            capabilities["resources"] = {"subscribe": False, "listChanged": False}
        return {
            "protocolVersion": version,
            "capabilities": capabilities,
            "serverInfo": {
                "name": self._server_name,
                "version": self._server_version,
            },
            **({"instructions": self._instructions} if self._instructions else {}),
        }

    def handle_tools_list(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle ``tools/list`` and return MCP tool schemas."""
        _ = params
        tools = []
        for tool_obj in self._registry.list():
            spec = tool_obj.spec
            entry: dict[str, Any] = {
                "name": spec.name,
                "description": spec.description,
                "inputSchema": {
                    "type": "object",
                    **(spec.parameters_schema or {}),
                },
            }
            if spec.output_schema:
                entry["outputSchema"] = spec.output_schema
            if spec.annotations:
                entry["annotations"] = spec.annotations
            tools.append(entry)
        return {"tools": tools}

    async def handle_tools_call(
        self, params: dict[str, Any], session: Session | None = None
    ) -> dict[str, Any]:
        """Handle ``tools/call`` and return MCP content result."""
        tool_name = params.get("name")
        if not tool_name or not isinstance(tool_name, str):
            raise ProtocolError(INVALID_PARAMS, "Missing 'name' in tools/call params")

        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise ProtocolError(INVALID_PARAMS, "'arguments' must be an object")

        ctx = ToolContext(
            request_id=uuid.uuid4().hex,
            headers=session.headers if session is not None else {},
            metadata={
                "source": "mcp",
                "tool_name": tool_name,
                "session_id": session.id if session is not None else None,
            },
        )
        started = time.monotonic()
        try:
            result = await self._registry.call(tool_name, arguments, ctx=ctx)
        except ToolNotFoundError as exc:
            raise ProtocolError(INVALID_PARAMS, f"Tool not found: {tool_name}") from exc

        if self._metrics is not None:
            self._metrics.observe_tool_call(tool_name, result.success, time.monotonic() - started)
        if not result.success:
            logger.warning("Tool %s failed: %s", tool_name, result.error_message)

        response: dict[str, Any] = {
            "content": self._result_content(
                result.output, result.success, result.error_message
            ),
            "isError": not result.success,
        }
        if result.success and isinstance(result.output, ToolOutput) and result.output.structured is not None:
            response["structuredContent"] = result.output.structured
        return response

    def handle_cancelled(self, params: dict[str, Any], session: Session | None) -> None:
        request_id = params.get("requestId")
        if session is None or request_id is None:
            return
        if session.cancel_request(request_id):
            logger.debug(
                "Cancelling request %r: %s", request_id, params.get("reason") or "no reason given"
            )

    def handle_resources_list(self, params: dict[str, Any]) -> dict[str, Any]:
        _ = params
        assert self._docs is not None
        return {
            "resources": [
                {
                    "uri": entry.uri,
                    "name": entry.id,
                    "title": entry.title,
                    "mimeType": entry.mime_type,
                }
                for entry in self._docs.entries()
            ]
        }

    def handle_resources_read(self, params: dict[str, Any]) -> dict[str, Any]:
        assert self._docs is not None
        uri = params.get("uri")
        if not uri or not isinstance(uri, str):
            raise ProtocolError(INVALID_PARAMS, "Missing 'uri' in resources/read params")
        try:
            entry = self._docs.resolve_uri(uri)
        except DocNotFoundError as exc:
            raise ProtocolError(RESOURCE_NOT_FOUND, f"Resource not found: {uri}", {"uri": uri}) from exc
        return {
            "contents": [
                {"uri": entry.uri, "mimeType": entry.mime_type, "text": entry.content}
            ]
        }

    def _result_content(
        self,
        output: Any,
        success: bool,
        error_message: str | None,
    ) -> list[dict[str, Any]]:
        if not success:
            return [
                {
                    "type": "text",
                    "text": error_message or "Tool execution failed",
                }
            ]

        if isinstance(output, ToolOutput):
            return list(output.content)
        if isinstance(output, str):
            return [{"type": "text", "text": output}]
        if output is None:
            return [{"type": "text", "text": ""}]
        return [
            {
                "type": "text",
                "text": json.dumps(output, default=str),
            }
        ]
