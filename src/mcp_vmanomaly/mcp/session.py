"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

MCP sessions and the hub that tracks them.

A session carries the inbound headers (used for auth forwarding), an
outbound message queue for streaming transports and the in-flight request
tasks that ``notifications/cancelled`` may target.

Sessions that see no traffic for ``idle_timeout_s`` are expired by the hub
unless a stream is attached or a request is still running.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

logger = logging.getLogger("mcp_vmanomaly.mcp")

DEFAULT_IDLE_TIMEOUT_S = 600.0


@dataclass(eq=False)
class Session:
    """
    One MCP client session.

    ``queue`` receives outbound JSON-RPC messages for stream-based
    transports; ``None`` on the queue marks the end of the stream.
    """

    transport: str
    headers: Mapping[str, str] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at_s: float = field(default_factory=time.time)
    last_seen_s: float = field(default_factory=time.monotonic)
    initialized: bool = False
    closed: bool = False
    streams: int = 0
    queue: asyncio.Queue = field(default_factory=asyncio.Queue, repr=False)
    _inflight: dict[Hashable, asyncio.Future[Any]] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.update_headers(self.headers)

    def update_headers(self, headers: Mapping[str, str]) -> None:
        self.headers = MappingProxyType({k.lower(): v for k, v in headers.items()})

    def busy(self) -> bool:
        return self.streams > 0 or bool(self._inflight)

    # ''''''''''''''''''
    # In-flight requests
    # ''''''''''''''''''

    def track(self, request_id: Hashable, task: asyncio.Future[Any]) -> None:
        self._inflight[request_id] = task

    def untrack(self, request_id: Hashable) -> None:
        self._inflight.pop(request_id, None)

    def inflight(self) -> int:
        return len(self._inflight)

    def cancel_request(self, request_id: Hashable) -> bool:
        """Cancel one in-flight request; False when it is unknown or done."""
        task = self._inflight.get(request_id)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    # ''''''''''''''''''
    # Outbound messages
    # ''''''''''''''''''

    def publish(self, message: dict[str, Any]) -> None:
        if self.closed:
            logger.debug("Dropping message for closed session %s", self.id)
            return
        self.queue.put_nowait(message)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.queue.put_nowait(None)


class SessionHub:
    """
    Registry of open sessions for one server process.

    Idle sessions are swept lazily on every ``create`` and ``get``. With
    ``idle_timeout_s=None`` sessions live until they are removed.
    """

    def __init__(
        self,
        *,
        idle_timeout_s: float | None = DEFAULT_IDLE_TIMEOUT_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if idle_timeout_s is not None and idle_timeout_s <= 0:
            raise ValueError("idle_timeout_s must be positive")
        self._sessions: dict[str, Session] = {}
        self._idle_timeout_s = idle_timeout_s
        self._clock = clock

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def create(self, transport: str, headers: Mapping[str, str] | None = None) -> Session:
        self.sweep()
        session = Session(transport=transport, headers=dict(headers or {}))
        session.last_seen_s = self._clock()
        self._sessions[session.id] = session
        logger.debug("Opened %s session %s", transport, session.id)
        return session

    def get(self, session_id: str | None) -> Session | None:
        self.sweep()
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_seen_s = self._clock()
        return session

    def remove(self, session_id: str) -> Session | None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.close()
            logger.debug("Closed %s session %s", session.transport, session_id)
        return session

    def sweep(self) -> int:
        """Expire idle sessions; returns how many were removed."""
        if self._idle_timeout_s is None:
            return 0
        cutoff = self._clock() - self._idle_timeout_s
        expired = [
            s.id for s in self._sessions.values() if s.last_seen_s < cutoff and not s.busy()
        ]
        for session_id in expired:
            self.remove(session_id)
        if expired:
            logger.info("Expired %d idle session(s)", len(expired))
        return len(expired)

    def close_all(self) -> int:
        """Close every session's stream; returns how many were open."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            session.close()
        return len(sessions)
