"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

``mcp-vmanomaly`` console entry point.

All settings come from the environment; see ``ServerSettings.from_env``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Sequence

from . import SERVER_NAME, __version__
from .config import ConfigError, ServerSettings
from .docs import DocsIndex
from .mcp import MCPProtocolHandler, SessionHub
from .observability import ServerMetrics, configure_logging
from .server import EXIT_FAILURE, ServerLifecycle
from .tools import ToolDenyList, build_registry
from .vmanomaly import VmanomalyClient, VmanomalyClientConfig

logger = logging.getLogger("mcp_vmanomaly")

INSTRUCTIONS = (
    "Tools for the vmanomaly anomaly detection service: inspect models, "
    "build and validate configurations, run detection tasks, query data and "
    "search the documentation."
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=SERVER_NAME,
        description=(
            "MCP server for vmanomaly. Configured through environment variables: "
            "VMANOMALY_ENDPOINT (required), VMANOMALY_BEARER_TOKEN, VMANOMALY_HEADERS, "
            "MCP_SERVER_MODE, MCP_LISTEN_ADDR, MCP_DISABLED_TOOLS, "
            "MCP_HEARTBEAT_INTERVAL, MCP_DISABLE_RESOURCES, MCP_LOG_LEVEL, MCP_LOG_FILE."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


async def serve(settings: ServerSettings) -> int:
    """Wire the client, tools and transport from ``settings`` and run until stopped."""
    client = VmanomalyClient(
        VmanomalyClientConfig(
            base_url=settings.vmanomaly_endpoint,
            bearer_token=settings.bearer_token,
            headers=settings.headers,
        )
    )
    async with client:
        docs = DocsIndex.bundled()
        registry = build_registry(
            client, docs=docs, deny_list=ToolDenyList(settings.disabled_tools)
        )
        metrics = ServerMetrics()
        handler = MCPProtocolHandler(
            registry=registry,
            server_name=SERVER_NAME,
            server_version=__version__,
            instructions=INSTRUCTIONS,
            docs=None if settings.disable_resources else docs,
            metrics=metrics,
        )
        if settings.mode.is_network:
            logger.info(
                "Starting %s %s in %s mode", SERVER_NAME, __version__, settings.mode.value
            )
            host, port = settings.listen_host_port
        else:
            host, port = "localhost", 0
        lifecycle = ServerLifecycle(
            mode=settings.mode,
            handler=handler,
            hub=SessionHub(),
            metrics=metrics,
            host=host,
            port=port,
            heartbeat_interval_s=settings.heartbeat_interval_s,
            name=SERVER_NAME,
            version=__version__,
        )
        return await lifecycle.run()


def main(argv: Sequence[str] | None = None) -> int:
    build_parser().parse_args(argv)

    try:
        settings = ServerSettings.from_env()
    except ConfigError as e:
        print(f"Error initializing config: {e}", file=sys.stderr)
        return EXIT_FAILURE

    configure_logging(settings.log_level, settings.log_file)
    try:
        return asyncio.run(serve(settings))
    except KeyboardInterrupt:
        return EXIT_FAILURE
