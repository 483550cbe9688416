"""
Local port forwarding over an established SSH session.

A TCP listener on localhost accepts clients; each client gets its own
forwarded channel and the two byte streams are spliced together. A failing
client never takes the listener down.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Set

from ..core.config import DEFAULT_FORWARD_HOST
from ..core.errors import ChannelError
from ..core.options import ForwardingRule
from ..utils.streams import splice
from .transport import Transport

logger = logging.getLogger(__name__)


class ForwardingProxy:
    def __init__(self, transport: Transport, session: Any, rule: ForwardingRule) -> None:
        self._transport = transport
        self._session = session
        self.rule = rule
        self._server: Optional[asyncio.AbstractServer] = None
        self._clients: Set[asyncio.Task] = set()

    async def start(self) -> asyncio.AbstractServer:
        """Bind the listener; returns once it is accepting connections."""
        self._server = await asyncio.start_server(
            self._handle_client, host=DEFAULT_FORWARD_HOST, port=self.rule.from_port,
        )
        logger.info(
            "[Forward] listening on %s:%d -> %s:%d",
            DEFAULT_FORWARD_HOST, self.rule.from_port, self.rule.to_host, self.rule.to_port,
        )
        return self._server

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._clients.add(task)
        peer = writer.get_extra_info('peername')
        rule = self.rule
        logger.debug(
            'Forwarding connection from "%s:%d" to "%s:%d" (client %s)',
            DEFAULT_FORWARD_HOST, rule.from_port, rule.to_host, rule.to_port, peer,
        )
        try:
            try:
                channel = await self._transport.open_forwarded_channel(
                    self._session, DEFAULT_FORWARD_HOST, rule.from_port, rule.to_host, rule.to_port,
                )
            except ChannelError as e:
                logger.error(f"[Forward] Forwarding socket failed for client {peer}: {e}")
                writer.close()
                return
            await splice(reader, writer, channel.reader, channel.writer, label=f"forward {peer}")
        except Exception as e:
            logger.error(f"[Forward] client {peer} dropped: {e}")
            writer.close()
        finally:
            if task is not None:
                self._clients.discard(task)

    def active_clients(self) -> int:
        return len(self._clients)

    def close(self) -> None:
        """Stop accepting clients and cut the ones still being forwarded."""
        if self._server is not None:
            self._server.close()
        for task in list(self._clients):
            if not task.done():
                task.cancel()

    async def wait_closed(self) -> None:
        if self._server is not None:
            await self._server.wait_closed()
        logger.info("[Forward] listener on %s:%d closed", DEFAULT_FORWARD_HOST, self.rule.from_port)
