"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Server state, HTTP application and lifecycle orchestration.
"""

from .app import build_health_router, create_app
from .lifecycle import EXIT_FAILURE, EXIT_OK, LifecycleTimings, ServerLifecycle
from .state import InvalidStateTransition, ServerState, ServerStateCell

__all__ = [
    "EXIT_FAILURE",
    "EXIT_OK",
    "InvalidStateTransition",
    "LifecycleTimings",
    "ServerLifecycle",
    "ServerState",
    "ServerStateCell",
    "build_health_router",
    "create_app",
]
