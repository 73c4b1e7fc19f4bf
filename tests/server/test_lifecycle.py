from __future__ import annotations

import asyncio
import io
import logging
import socket
import time

import httpx
from pydantic import BaseModel

from mcp_vmanomaly.config import ServerMode
from mcp_vmanomaly.mcp import MCPProtocolHandler
from mcp_vmanomaly.observability import ServerMetrics
from mcp_vmanomaly.server import (
    EXIT_FAILURE,
    EXIT_OK,
    LifecycleTimings,
    ServerLifecycle,
    ServerState,
)
from mcp_vmanomaly.server import lifecycle as lifecycle_module
from mcp_vmanomaly.tools import ToolRegistry
from mcp_vmanomaly.tools.core import tool

FAST = LifecycleTimings(drain_delay_s=0.3, graceful_period_s=2.0, hard_period_s=0.5)


def make_lifecycle(
    mode: ServerMode = ServerMode.HTTP,
    *,
    registry: ToolRegistry | None = None,
    timings: LifecycleTimings = FAST,
    **kwargs,
) -> ServerLifecycle:
    handler = MCPProtocolHandler(
        registry=registry or ToolRegistry(), server_name="t", server_version="0"
    )
    kwargs.setdefault("host", "127.0.0.1")
    kwargs.setdefault("port", 0)
    return ServerLifecycle(
        mode=mode,
        handler=handler,
        metrics=ServerMetrics(process=False),
        timings=timings,
        install_signal_handlers=False,
        **kwargs,
    )


async def wait_for_state(lifecycle: ServerLifecycle, target: ServerState) -> None:
    for _ in range(500):
        if lifecycle.state.get() >= target:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"state never reached {target.name}")


async def readiness(base_url: str) -> int:
    async with httpx.AsyncClient(base_url=base_url, trust_env=False) as client:
        resp = await client.get("/health/readiness")
        return resp.status_code


def test_network_lifecycle_drains_then_stops_cleanly():
    lifecycle = make_lifecycle()

    async def scenario():
        run = asyncio.create_task(lifecycle.run())
        await wait_for_state(lifecycle, ServerState.LISTENING)
        host, port = lifecycle.bound_address
        base_url = f"http://{host}:{port}"

        ready = await readiness(base_url)
        lifecycle.request_shutdown()
        await wait_for_state(lifecycle, ServerState.DRAINING)
        draining = await readiness(base_url)

        code = await asyncio.wait_for(run, 5.0)
        try:
            await readiness(base_url)
        except httpx.ConnectError:
            refused = True
        else:
            refused = False
        return ready, draining, code, refused

    ready, draining, code, refused = asyncio.run(scenario())

    assert ready == 200
    assert draining == 503
    assert code == EXIT_OK
    assert refused is True
    assert lifecycle.state.get() is ServerState.STOPPED


def test_open_streams_are_closed_on_shutdown():
    lifecycle = make_lifecycle(ServerMode.SSE, heartbeat_interval_s=0)

    async def scenario():
        run = asyncio.create_task(lifecycle.run())
        await wait_for_state(lifecycle, ServerState.LISTENING)
        session = lifecycle.hub.create("sse", {})
        lifecycle.request_shutdown()
        code = await asyncio.wait_for(run, 5.0)
        return session, code

    session, code = asyncio.run(scenario())

    assert code == EXIT_OK
    assert session.closed is True
    assert len(lifecycle.hub) == 0


def test_shutdown_requested_before_run_still_drains():
    lifecycle = make_lifecycle()
    lifecycle.request_shutdown()

    code = asyncio.run(asyncio.wait_for(lifecycle.run(), 5.0))

    assert code == EXIT_OK
    assert lifecycle.state.get() is ServerState.STOPPED


def test_bind_failure_exits_with_failure():
    blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    blocker.bind(("127.0.0.1", 0))
    blocker.listen(1)
    try:
        port = blocker.getsockname()[1]
        lifecycle = make_lifecycle(port=port)
        code = asyncio.run(lifecycle.run())
    finally:
        blocker.close()

    assert code == EXIT_FAILURE
    assert lifecycle.state.get() is ServerState.STOPPED


def test_stdio_lifecycle_stops_at_eof():
    stdout = io.StringIO()
    lifecycle = make_lifecycle(
        ServerMode.STDIO,
        stdin=io.StringIO('{"jsonrpc":"2.0","id":1,"method":"ping"}\n'),
        stdout=stdout,
    )

    code = asyncio.run(lifecycle.run())

    assert code == EXIT_OK
    assert stdout.getvalue() == '{"jsonrpc":"2.0","id":1,"result":{}}\n'
    assert lifecycle.state.get() is ServerState.STOPPED


class SlowArgs(BaseModel):
    seconds: float = 30.0


def test_graceful_overrun_forces_exit_within_hard_period(caplog):
    started = asyncio.Event()

    @tool(args_model=SlowArgs, name="slow")
    async def slow(args: SlowArgs) -> str:
        started.set()
        await asyncio.sleep(args.seconds)
        return "done"

    registry = ToolRegistry()
    registry.register(slow)
    timings = LifecycleTimings(drain_delay_s=0.1, graceful_period_s=0.2, hard_period_s=0.2)
    lifecycle = make_lifecycle(registry=registry, timings=timings)

    async def call_slow(base_url: str) -> None:
        async with httpx.AsyncClient(base_url=base_url, trust_env=False, timeout=30.0) as client:
            await client.post(
                "/mcp",
                json={"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {"name": "slow"}},
            )

    async def scenario():
        run = asyncio.create_task(lifecycle.run())
        await wait_for_state(lifecycle, ServerState.LISTENING)
        host, port = lifecycle.bound_address
        pending = asyncio.create_task(call_slow(f"http://{host}:{port}"))
        await asyncio.wait_for(started.wait(), 5.0)

        begin = time.monotonic()
        lifecycle.request_shutdown()
        code = await asyncio.wait_for(run, 5.0)
        elapsed = time.monotonic() - begin

        pending.cancel()
        await asyncio.gather(pending, return_exceptions=True)
        return code, elapsed

    with caplog.at_level(logging.WARNING, logger="mcp_vmanomaly.server"):
        code, elapsed = asyncio.run(scenario())

    assert code == EXIT_OK
    assert lifecycle.state.get() is ServerState.STOPPED
    assert elapsed < 0.1 + 0.2 + 0.2 + 1.0
    assert any(
        "Failed to wait for ongoing requests to finish" in r.getMessage() for r in caplog.records
    )


def test_listener_stopping_on_its_own_exits_with_failure(monkeypatch):
    servers = []

    class RecordingServer(lifecycle_module._UvicornServer):
        def __init__(self, config):
            super().__init__(config)
            servers.append(self)

    monkeypatch.setattr(lifecycle_module, "_UvicornServer", RecordingServer)
    lifecycle = make_lifecycle()

    async def scenario():
        run = asyncio.create_task(lifecycle.run())
        await wait_for_state(lifecycle, ServerState.LISTENING)
        servers[0].should_exit = True
        return await asyncio.wait_for(run, 5.0)

    code = asyncio.run(scenario())

    assert code == EXIT_FAILURE
    assert lifecycle.state.get() is ServerState.STOPPED
