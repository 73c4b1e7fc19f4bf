"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Newline-delimited JSON-RPC over stdin/stdout for a single local session.

Requests are handled concurrently, each as its own task; responses are
written whole, one per line, under a lock. The session ends at EOF once
every in-flight request has completed.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import threading
from typing import IO, Any

from .protocol import PARSE_ERROR, MCPProtocolHandler, jsonrpc_error
from .session import Session

logger = logging.getLogger("mcp_vmanomaly.mcp.stdio")


class StdioTransport:
    def __init__(
        self,
        handler: MCPProtocolHandler,
        *,
        stdin: IO[str] | None = None,
        stdout: IO[str] | None = None,
    ) -> None:
        self._handler = handler
        self._stdin = stdin if stdin is not None else sys.stdin
        self._stdout = stdout if stdout is not None else sys.stdout
        self._write_lock = asyncio.Lock()
        self.session = Session(transport="stdio")

    async def _write(self, message: Any) -> None:
        line = json.dumps(message, ensure_ascii=False, separators=(",", ":"))
        async with self._write_lock:
            self._stdout.write(line + "\n")
            self._stdout.flush()

    async def _handle_line(self, line: str) -> None:
        try:
            message = json.loads(line)
        except ValueError:
            await self._write(jsonrpc_error(None, PARSE_ERROR, "Parse error"))
            return

        if isinstance(message, list):
            responses = [
                r
                for r in await asyncio.gather(
                    *(self._handler.handle_message(item, self.session) for item in message)
                )
                if r is not None
            ]
            if responses:
                await self._write(responses)
            return

        response = await self._handler.handle_message(message, self.session)
        if response is not None:
            await self._write(response)

    def _start_reader(self, lines: asyncio.Queue) -> threading.Thread:
        loop = asyncio.get_running_loop()

        def _deliver(item: str | None) -> bool:
            try:
                loop.call_soon_threadsafe(lines.put_nowait, item)
            except RuntimeError:
                # Event loop already closed; nobody is reading any more.
                return False
            return True

        def _read() -> None:
            try:
                for line in iter(self._stdin.readline, ""):
                    if not _deliver(line):
                        return
            finally:
                _deliver(None)

        # Daemon so a readline blocked on a silent pipe never holds up exit.
        thread = threading.Thread(target=_read, name="mcp-stdio-reader", daemon=True)
        thread.start()
        return thread

    async def serve(self) -> None:
        """
        Serve until EOF.

        Any exception escaping a request handler is fatal: pending requests
        are cancelled and the exception is re-raised to the caller.
        """
        lines: asyncio.Queue = asyncio.Queue()
        pending: set[asyncio.Task[None]] = set()
        failure: list[BaseException] = []

        def _done(task: asyncio.Task[None]) -> None:
            pending.discard(task)
            if task.cancelled():
                return
            exc = task.exception()
            if exc is not None and not failure:
                failure.append(exc)
                lines.put_nowait(None)

        self._start_reader(lines)
        try:
            while True:
                line = await lines.get()
                if line is None:
                    break
                if not line.strip():
                    continue
                task = asyncio.create_task(self._handle_line(line))
                pending.add(task)
                task.add_done_callback(_done)

            if not failure:
                logger.info("stdin closed, ending stdio session")
                if pending:
                    await asyncio.wait(set(pending))
        finally:
            for task in list(pending):
                task.cancel()
            self.session.close()

        if failure:
            raise failure[0]
