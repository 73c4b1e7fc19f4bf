"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Server settings and explicit environment loading.
"""

from __future__ import annotations

import enum
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

DEFAULT_LISTEN_ADDR = "localhost:8080"
DEFAULT_HEARTBEAT_INTERVAL_S = 30.0
DEFAULT_LOG_LEVEL = "info"

LOG_LEVELS = ("debug", "info", "warn", "error")

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


class ConfigError(ValueError):
    """Invalid or missing configuration value."""


class ServerMode(str, enum.Enum):
    STDIO = "stdio"
    HTTP = "http"
    SSE = "sse"

    @property
    def is_network(self) -> bool:
        return self is not ServerMode.STDIO


def parse_duration(value: str) -> float:
    """
    Parse a duration such as ``30s``, ``1m30s``, ``1.5h`` or ``250ms``.

    Returns seconds. A bare ``0`` is accepted; any other unitless number is
    rejected.
    """
    text = value.strip()
    if not text:
        raise ConfigError("empty duration")
    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ConfigError(f"invalid duration {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0:
        raise ConfigError(f"invalid duration {value!r}")
    return sign * total


def parse_bool(value: str) -> bool:
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"invalid boolean {value!r}")


def parse_headers(value: str) -> dict[str, str]:
    """
    Parse ``k1=v1,k2=v2`` into a header mapping.

    Entries without ``=`` or with an empty key or value are skipped; values
    may themselves contain ``=``.
    """
    headers: dict[str, str] = {}
    for item in value.split(","):
        item = item.strip()
        if not item or "=" not in item:
            continue
        key, _, val = item.partition("=")
        key, val = key.strip(), val.strip()
        if key and val:
            headers[key] = val
    return headers


def parse_name_list(value: str) -> frozenset[str]:
    return frozenset(n for n in (part.strip(" ,") for part in value.split(",")) if n)


def split_listen_addr(addr: str) -> tuple[str, int]:
    """Split ``host:port``; an empty host means all interfaces."""
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigError(f"MCP_LISTEN_ADDR must be host:port, got {addr!r}")
    host = host.strip("[]") or "0.0.0.0"
    port_no = int(port)
    if port_no > 65535:
        raise ConfigError(f"MCP_LISTEN_ADDR port out of range: {port_no}")
    return host, port_no


@dataclass(frozen=True, slots=True)
class ServerSettings:
    """Process configuration, loaded once at startup."""

    vmanomaly_endpoint: str
    bearer_token: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    mode: ServerMode = ServerMode.STDIO
    listen_addr: str = DEFAULT_LISTEN_ADDR
    disabled_tools: frozenset[str] = frozenset()
    heartbeat_interval_s: float = DEFAULT_HEARTBEAT_INTERVAL_S
    disable_resources: bool = False
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def listen_host_port(self) -> tuple[str, int]:
        return split_listen_addr(self.listen_addr)

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "ServerSettings":
        """Load settings from environment variables; raises ``ConfigError``."""
        env = os.environ if environ is None else environ

        endpoint = env.get("VMANOMALY_ENDPOINT", "").strip()
        if not endpoint:
            raise ConfigError("VMANOMALY_ENDPOINT is required")

        mode_raw = env.get("MCP_SERVER_MODE", "").strip().lower() or ServerMode.STDIO.value
        try:
            mode = ServerMode(mode_raw)
        except ValueError as e:
            raise ConfigError("MCP_SERVER_MODE must be 'stdio', 'http' or 'sse'") from e

        heartbeat = DEFAULT_HEARTBEAT_INTERVAL_S
        heartbeat_raw = env.get("MCP_HEARTBEAT_INTERVAL", "")
        if heartbeat_raw:
            try:
                heartbeat = parse_duration(heartbeat_raw)
            except ConfigError as e:
                raise ConfigError(f"failed to parse MCP_HEARTBEAT_INTERVAL: {e}") from e
            if heartbeat < 0:
                raise ConfigError("MCP_HEARTBEAT_INTERVAL must be non-negative")

        disable_resources = False
        disable_raw = env.get("MCP_DISABLE_RESOURCES", "")
        if disable_raw:
            try:
                disable_resources = parse_bool(disable_raw)
            except ConfigError as e:
                raise ConfigError(f"failed to parse MCP_DISABLE_RESOURCES: {e}") from e

        log_level = env.get("MCP_LOG_LEVEL", "").strip().lower() or DEFAULT_LOG_LEVEL
        if log_level not in LOG_LEVELS:
            raise ConfigError("MCP_LOG_LEVEL must be 'debug', 'info', 'warn', or 'error'")

        listen_addr = env.get("MCP_LISTEN_ADDR", "").strip() or DEFAULT_LISTEN_ADDR
        if mode.is_network:
            split_listen_addr(listen_addr)

        return ServerSettings(
            vmanomaly_endpoint=endpoint,
            bearer_token=env.get("VMANOMALY_BEARER_TOKEN") or None,
            headers=parse_headers(env.get("VMANOMALY_HEADERS", "")),
            mode=mode,
            listen_addr=listen_addr,
            disabled_tools=parse_name_list(env.get("MCP_DISABLED_TOOLS", "")),
            heartbeat_interval_s=heartbeat,
            disable_resources=disable_resources,
            log_level=log_level,
            log_file=env.get("MCP_LOG_FILE") or None,
        )
