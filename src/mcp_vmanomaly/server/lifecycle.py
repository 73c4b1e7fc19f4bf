"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Server lifecycle orchestration.

Stdio mode serves one session over stdin/stdout and stops at EOF. The
network modes bind a listener, serve the FastAPI app with uvicorn and, on
SIGINT/SIGTERM (or ``request_shutdown``), drain in stages:

1. DRAINING: readiness reports 503 and new sessions are refused, for the
   drain delay, so load balancers stop routing here.
2. SHUTTING_DOWN: uvicorn stops accepting connections and streaming
   sessions are closed; in-flight requests get the graceful period.
3. On overrun, remaining work is forced to stop within the hard period.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import socket
from dataclasses import dataclass
from typing import IO, Iterator

import uvicorn

from ..config import ServerMode
from ..mcp import MCPProtocolHandler, SessionHub, StdioTransport
from ..observability import ServerMetrics
from .app import create_app
from .state import ServerState, ServerStateCell

logger = logging.getLogger("mcp_vmanomaly.server")

EXIT_OK = 0
EXIT_FAILURE = 1

_STARTUP_POLL_S = 0.01


@dataclass(frozen=True, slots=True)
class LifecycleTimings:
    drain_delay_s: float = 3.0
    graceful_period_s: float = 15.0
    hard_period_s: float = 3.0


class _UvicornServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to ``ServerLifecycle``."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class ServerLifecycle:
    """Runs one transport from startup to stop and reports the exit code."""

    def __init__(
        self,
        *,
        mode: ServerMode,
        handler: MCPProtocolHandler,
        hub: SessionHub | None = None,
        metrics: ServerMetrics | None = None,
        host: str = "localhost",
        port: int = 8080,
        heartbeat_interval_s: float = 30.0,
        timings: LifecycleTimings | None = None,
        install_signal_handlers: bool = True,
        stdin: IO[str] | None = None,
        stdout: IO[str] | None = None,
        name: str = "mcp-vmanomaly",
        version: str = "0.0.0",
    ) -> None:
        self._mode = mode
        self._handler = handler
        self._hub = hub or SessionHub()
        self._metrics = metrics or ServerMetrics()
        self._host = host
        self._port = port
        self._heartbeat_interval_s = heartbeat_interval_s
        self._timings = timings or LifecycleTimings()
        self._install_signal_handlers = install_signal_handlers
        self._stdin = stdin
        self._stdout = stdout
        self._name = name
        self._version = version

        self._state = ServerStateCell(
            on_change=lambda s: self._metrics.server_state.set(int(s))
        )
        self._metrics.server_state.set(int(ServerState.STARTING))
        self._metrics.track_sessions(lambda: len(self._hub))

        self._loop: asyncio.AbstractEventLoop | None = None
        self._shutdown_event: asyncio.Event | None = None
        self._shutdown_requested = False
        self._bound: tuple[str, int] | None = None

    @property
    def state(self) -> ServerStateCell:
        return self._state

    @property
    def hub(self) -> SessionHub:
        return self._hub

    @property
    def bound_address(self) -> tuple[str, int] | None:
        """Actual listening address once bound (useful with port 0)."""
        return self._bound

    def request_shutdown(self) -> None:
        """Begin the drain sequence; safe to call from any thread."""
        self._shutdown_requested = True
        if self._loop is not None and self._shutdown_event is not None:
            self._loop.call_soon_threadsafe(self._shutdown_event.set)

    async def run(self) -> int:
        self._loop = asyncio.get_running_loop()
        self._shutdown_event = asyncio.Event()
        if self._shutdown_requested:
            self._shutdown_event.set()
        if self._mode is ServerMode.STDIO:
            return await self._run_stdio()
        return await self._run_network()

    # ''''''''''
    # Stdio
    # ''''''''''

    async def _run_stdio(self) -> int:
        transport = StdioTransport(self._handler, stdin=self._stdin, stdout=self._stdout)
        self._state.advance(ServerState.LISTENING)
        try:
            await transport.serve()
        except Exception:
            logger.exception("Failed to serve stdio session")
            return EXIT_FAILURE
        finally:
            self._state.advance(ServerState.STOPPED)
        return EXIT_OK

    # ''''''''''
    # Network
    # ''''''''''

    def _bind(self) -> socket.socket:
        infos = socket.getaddrinfo(
            self._host, self._port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
        )
        family, socktype, proto, _, address = infos[0]
        sock = socket.socket(family, socktype, proto)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(address)
            sock.listen(2048)
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise
        host, port = sock.getsockname()[:2]
        self._bound = (host, port)
        return sock

    @contextlib.contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        installed: list[signal.Signals] = []
        if self._install_signal_handlers and self._loop is not None:
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    self._loop.add_signal_handler(sig, self.request_shutdown)
                except (NotImplementedError, RuntimeError) as e:
                    logger.warning("Cannot install handler for %s: %s", sig.name, e)
                    continue
                installed.append(sig)
        try:
            yield
        finally:
            for sig in installed:
                self._loop.remove_signal_handler(sig)

    async def _run_network(self) -> int:
        try:
            sock = self._bind()
        except OSError as e:
            logger.error("Failed to listen on %s:%s: %s", self._host, self._port, e)
            self._state.advance(ServerState.STOPPED)
            return EXIT_FAILURE

        app = create_app(
            mode=self._mode,
            handler=self._handler,
            hub=self._hub,
            state=self._state,
            metrics=self._metrics,
            heartbeat_interval_s=self._heartbeat_interval_s,
            name=self._name,
            version=self._version,
        )
        server = _UvicornServer(
            uvicorn.Config(app, log_config=None, lifespan="off", access_log=False)
        )
        serve_task = asyncio.create_task(server.serve(sockets=[sock]))

        try:
            while not server.started:
                if serve_task.done():
                    logger.error("Server failed to start: %s", _task_error(serve_task))
                    self._state.advance(ServerState.STOPPED)
                    return EXIT_FAILURE
                await asyncio.sleep(_STARTUP_POLL_S)

            self._state.advance(ServerState.LISTENING)
            host, port = self._bound or (self._host, self._port)
            logger.info("Server is listening on %s:%d (%s mode)", host, port, self._mode.value)

            with self._signal_handlers():
                assert self._shutdown_event is not None
                waiter = asyncio.ensure_future(self._shutdown_event.wait())
                done, _ = await asyncio.wait(
                    {serve_task, waiter}, return_when=asyncio.FIRST_COMPLETED
                )
                if serve_task in done:
                    waiter.cancel()
                    logger.error("Server stopped unexpectedly: %s", _task_error(serve_task))
                    self._state.advance(ServerState.STOPPED)
                    return EXIT_FAILURE

                return await self._drain(server, serve_task)
        finally:
            sock.close()

    async def _drain(self, server: uvicorn.Server, serve_task: asyncio.Task) -> int:
        timings = self._timings
        self._state.advance(ServerState.DRAINING)
        logger.info("Received shutdown signal, shutting down")

        await asyncio.sleep(timings.drain_delay_s)
        logger.info("Readiness check propagated, waiting for ongoing requests to finish")

        self._state.advance(ServerState.SHUTTING_DOWN)
        server.should_exit = True
        closed = self._hub.close_all()
        if closed:
            logger.info("Closed %d streaming session(s)", closed)

        done, _ = await asyncio.wait({serve_task}, timeout=timings.graceful_period_s)
        if not done:
            logger.warning("Failed to wait for ongoing requests to finish, forcing cancellation")
            server.force_exit = True
            done, _ = await asyncio.wait({serve_task}, timeout=timings.hard_period_s)
            if not done:
                serve_task.cancel()
                await asyncio.wait({serve_task})

        self._state.advance(ServerState.STOPPED)
        if not serve_task.cancelled() and serve_task.exception() is not None:
            logger.error("Server failed during shutdown: %s", serve_task.exception())
            return EXIT_FAILURE
        logger.info("Server stopped")
        return EXIT_OK


def _task_error(task: asyncio.Task) -> str:
    if task.cancelled():
        return "cancelled"
    exc = task.exception()
    return repr(exc) if exc is not None else "exited"
