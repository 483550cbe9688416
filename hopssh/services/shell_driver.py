"""
Shell driver: interactive shells and one-shot commands over a session.

Local stdio is wired to the remote shell channel until the channel closes.
Anything the remote writes to its error stream fails the operation.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ..core.config import COPY_CHUNK_SIZE
from ..core.errors import RemoteStreamError
from ..utils.streams import pump
from .terminal import TerminalIO
from .transport import ShellChannel, Transport

logger = logging.getLogger(__name__)


class ShellDriver:
    def __init__(self, transport: Transport, terminal: TerminalIO,
                 on_close: Optional[Callable[[Any], Awaitable[None]]] = None) -> None:
        self._transport = transport
        self._terminal = terminal
        # Called with the session once the shell channel has closed
        self._on_close = on_close

    async def run(self, session: Any, command: Optional[str] = None) -> None:
        """Run an interactive shell, or `command` followed by exit."""
        channel = await self._transport.open_shell_channel(session)
        mode = "command" if command is not None else "interactive"
        logger.info("[Shell] %s shell opened", mode)

        tasks = [asyncio.ensure_future(self._pump_output(channel))]
        errors = asyncio.ensure_future(self._watch_errors(channel, command))
        closed = asyncio.ensure_future(channel.wait_closed())
        stdin_task: Optional[asyncio.Future] = None

        try:
            if command is not None:
                channel.stdin.write(f"{command}\nexit\n".encode('utf-8'))
                channel.stdin.write_eof()
            else:
                stdin_task = asyncio.ensure_future(self._pump_input(channel))
                tasks.append(stdin_task)

            await asyncio.wait({closed, errors}, return_when=asyncio.FIRST_EXCEPTION)
            if errors.done() and errors.exception() is not None:
                raise errors.exception()
            if closed.done() and closed.exception() is not None:
                raise closed.exception()
            # Let the last output chunks reach stdout before teardown
            await asyncio.gather(*tasks[:1], return_exceptions=True)
        except RemoteStreamError:
            channel.close()
            if self._on_close is not None:
                await self._on_close(session)
            raise
        finally:
            for task in (errors, closed, *tasks):
                if not task.done():
                    task.cancel()
            if stdin_task is not None:
                self._terminal.close_input()

        logger.info("[Shell] %s shell closed", mode)
        if self._on_close is not None:
            await self._on_close(session)

    async def _pump_output(self, channel: ShellChannel) -> None:
        while True:
            data = await channel.stdout.read(COPY_CHUNK_SIZE)
            if not data:
                break
            self._terminal.write_output(data)

    async def _pump_input(self, channel: ShellChannel) -> None:
        reader = await self._terminal.open_input()
        await pump(reader, channel.stdin, "stdin")

    async def _watch_errors(self, channel: ShellChannel, command: Optional[str]) -> None:
        data = await channel.stderr.read(COPY_CHUNK_SIZE)
        if data:
            logger.debug("[Shell] remote error stream produced %d bytes", len(data))
            raise RemoteStreamError(data, command)
