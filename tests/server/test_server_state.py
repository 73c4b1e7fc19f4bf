from __future__ import annotations

import pytest

from mcp_vmanomaly.server import InvalidStateTransition, ServerState, ServerStateCell


def test_state_moves_forward_and_reports_previous():
    seen: list[ServerState] = []
    cell = ServerStateCell(on_change=seen.append)

    assert cell.get() is ServerState.STARTING
    assert cell.ready is False
    assert cell.advance(ServerState.LISTENING) is ServerState.STARTING
    assert cell.ready is True
    assert cell.advance(ServerState.DRAINING) is ServerState.LISTENING
    assert cell.ready is False
    cell.advance(ServerState.SHUTTING_DOWN)
    cell.advance(ServerState.STOPPED)

    assert seen == [
        ServerState.LISTENING,
        ServerState.DRAINING,
        ServerState.SHUTTING_DOWN,
        ServerState.STOPPED,
    ]


def test_state_may_skip_ahead_but_never_go_back():
    cell = ServerStateCell()
    cell.advance(ServerState.STOPPED)

    with pytest.raises(InvalidStateTransition) as excinfo:
        cell.advance(ServerState.LISTENING)
    assert excinfo.value.current is ServerState.STOPPED
    assert cell.get() is ServerState.STOPPED


def test_advancing_to_same_state_does_not_notify():
    seen: list[ServerState] = []
    cell = ServerStateCell(ServerState.LISTENING, on_change=seen.append)

    cell.advance(ServerState.LISTENING)

    assert seen == []
