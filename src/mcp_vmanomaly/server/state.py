"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Server lifecycle state and its guarded holder.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable

logger = logging.getLogger("mcp_vmanomaly.server")


class ServerState(enum.IntEnum):
    """Lifecycle states in their only permitted order."""

    STARTING = 0
    LISTENING = 1
    DRAINING = 2
    SHUTTING_DOWN = 3
    STOPPED = 4


class InvalidStateTransition(RuntimeError):
    def __init__(self, current: ServerState, target: ServerState) -> None:
        super().__init__(f"cannot move from {current.name} to {target.name}")
        self.current = current
        self.target = target


class ServerStateCell:
    """
    Holds the single current ``ServerState``.

    Transitions only move forward; skipping states is allowed (a fatal
    startup goes straight from STARTING to STOPPED), going back is not.
    Safe to read from any thread.
    """

    def __init__(
        self,
        initial: ServerState = ServerState.STARTING,
        *,
        on_change: Callable[[ServerState], None] | None = None,
    ) -> None:
        self._state = initial
        self._lock = threading.Lock()
        self._on_change = on_change

    def get(self) -> ServerState:
        with self._lock:
            return self._state

    @property
    def ready(self) -> bool:
        return self.get() is ServerState.LISTENING

    def advance(self, target: ServerState) -> ServerState:
        """Move to ``target`` and return the previous state."""
        with self._lock:
            previous = self._state
            if target < previous:
                raise InvalidStateTransition(previous, target)
            self._state = target
        if target != previous:
            logger.debug("Server state %s -> %s", previous.name, target.name)
            if self._on_change is not None:
                self._on_change(target)
        return previous
