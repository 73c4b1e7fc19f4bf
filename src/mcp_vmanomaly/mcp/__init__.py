"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

MCP protocol handling and its three transports.
"""

from .protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    MCP_PROTOCOL_VERSION,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    MCPProtocolHandler,
    ProtocolError,
    jsonrpc_error,
    jsonrpc_response,
)
from .session import Session, SessionHub
from .sse import build_sse_router
from .stdio import StdioTransport
from .streamable import SESSION_HEADER, build_streamable_router

__all__ = [
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "MCP_PROTOCOL_VERSION",
    "METHOD_NOT_FOUND",
    "PARSE_ERROR",
    "MCPProtocolHandler",
    "ProtocolError",
    "SESSION_HEADER",
    "Session",
    "SessionHub",
    "StdioTransport",
    "build_sse_router",
    "build_streamable_router",
    "jsonrpc_error",
    "jsonrpc_response",
]
