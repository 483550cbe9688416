"""
Transport layer for hopssh.

Transport is the seam between the orchestrator and the SSH library: one
authenticated connect, forwarded (direct-tcpip) channels, shell channels and
teardown. AsyncSSHTransport implements it with AsyncSSH; tests substitute
their own implementation.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import socket
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

import asyncssh

from ..core.config import ABORT_TIMEOUT, CLOSE_TIMEOUT
from ..core.errors import ChannelError, SSHConnectionError
from ..core.options import ResolvedCredentials
from ..utils.logging import sanitize_log_message
from ..utils.streams import splice
from .agent import PAGEANT_AGENT

logger = logging.getLogger(__name__)


@dataclass
class ForwardedChannel:
    """Stream pair for a direct-tcpip channel."""
    reader: Any
    writer: Any

    def close(self) -> None:
        self.writer.close()


@dataclass
class ShellChannel:
    """Streams of a remote shell session."""
    stdin: Any
    stdout: Any
    stderr: Any

    def close(self) -> None:
        self.stdin.close()

    async def wait_closed(self) -> None:
        await self.stdin.channel.wait_closed()


class Transport(ABC):
    """Primitives the orchestrator builds on."""

    @abstractmethod
    async def connect(self, host: str, port: int, credentials: ResolvedCredentials,
                      extra: Optional[Dict[str, Any]] = None,
                      channel: Optional[ForwardedChannel] = None) -> Any:
        """Open one authenticated session, over `channel` instead of TCP when given.

        Raises SSHConnectionError on any failure.
        """

    @abstractmethod
    async def open_forwarded_channel(self, session: Any, bind_host: str, bind_port: int,
                                     dest_host: str, dest_port: int) -> ForwardedChannel:
        """Open a direct-tcpip channel on `session`. Raises ChannelError."""

    @abstractmethod
    async def open_shell_channel(self, session: Any) -> ShellChannel:
        """Start a shell (with PTY) on `session`. Raises ChannelError."""

    @abstractmethod
    async def end(self, session: Any) -> None:
        """Close `session`. Must not raise."""


class AsyncSSHTransport(Transport):
    """Transport backed by AsyncSSH client connections."""

    def __init__(self) -> None:
        # Bridges feeding forwarded channels into second-leg connections
        self._bridges: Set[asyncio.Task] = set()

    def build_options(self, host: str, port: int, credentials: ResolvedCredentials,
                      extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            'host': host,
            'port': port,
            # Host keys are not verified unless the caller passes known_hosts through extra
            'known_hosts': None,
        }
        # Left out when unknown so AsyncSSH falls back to the local user
        if credentials.username is not None:
            options['username'] = credentials.username
        if credentials.private_key:
            options['client_keys'] = [credentials.private_key]
        elif not credentials.agent_forward:
            # Stops AsyncSSH from loading ~/.ssh/id_* or the agent on its own
            options['client_keys'] = None
        if credentials.passphrase is not None:
            options['passphrase'] = credentials.passphrase
        if credentials.agent_forward:
            options['agent_forwarding'] = True
            # AsyncSSH finds Pageant itself when no agent path is given
            if credentials.agent_path and credentials.agent_path != PAGEANT_AGENT:
                options['agent_path'] = credentials.agent_path
        if extra:
            options.update(extra)
        return options

    async def connect(self, host: str, port: int, credentials: ResolvedCredentials,
                      extra: Optional[Dict[str, Any]] = None,
                      channel: Optional[ForwardedChannel] = None) -> Any:
        options = self.build_options(host, port, credentials, extra)
        logger.info(sanitize_log_message(
            f"[Transport] Connecting to {host}:{port}{' via forwarded channel' if channel else ''}",
            options,
        ))

        bridge: Optional[asyncio.Task] = None
        start = time.time()
        try:
            if channel is not None:
                sock, bridge = await self._bridge(channel, host)
                options['sock'] = sock
            conn = await asyncssh.connect(**options)
        except asyncio.CancelledError:
            self._abandon(channel, bridge)
            raise
        except Exception as e:
            self._abandon(channel, bridge)
            logger.error(sanitize_log_message(f"[Transport] SSH connect error to {host}:{port} - {e}"))
            raise SSHConnectionError(host, sanitize_log_message(str(e)) or type(e).__name__) from e

        logger.info(f"[Transport] Connected to {host}:{port} in {time.time() - start:.2f}s")
        return conn

    async def _bridge(self, channel: ForwardedChannel, host: str):
        """Expose a forwarded channel as a connected socket for asyncssh.connect(sock=...)."""
        ssh_side, bridge_side = socket.socketpair()
        try:
            reader, writer = await asyncio.open_connection(sock=bridge_side)
        except BaseException:
            ssh_side.close()
            bridge_side.close()
            raise
        task = asyncio.ensure_future(
            splice(channel.reader, channel.writer, reader, writer, label=f"tunnel {host}")
        )
        self._bridges.add(task)
        task.add_done_callback(self._bridges.discard)
        return ssh_side, task

    @staticmethod
    def _abandon(channel: Optional[ForwardedChannel], bridge: Optional[asyncio.Task]) -> None:
        """Release the forwarded channel after a failed connect."""
        if bridge is not None:
            bridge.cancel()
        if channel is not None:
            try:
                channel.close()
            except Exception as e:
                logger.debug(f"[Transport] channel close failed: {e}")

    async def open_forwarded_channel(self, session: Any, bind_host: str, bind_port: int,
                                     dest_host: str, dest_port: int) -> ForwardedChannel:
        logger.debug("[Transport] direct-tcpip %s:%d -> %s:%d", bind_host, bind_port, dest_host, dest_port)
        try:
            reader, writer = await session.open_connection(
                dest_host, dest_port, orig_host=bind_host, orig_port=bind_port,
            )
        except (asyncssh.Error, OSError) as e:
            raise ChannelError(str(e), dest_host, dest_port) from e
        return ForwardedChannel(reader, writer)

    async def open_shell_channel(self, session: Any) -> ShellChannel:
        term_type = os.environ.get('TERM', 'xterm')
        term_size = tuple(shutil.get_terminal_size())
        try:
            stdin, stdout, stderr = await session.open_session(
                term_type=term_type, term_size=term_size, encoding=None,
            )
        except (asyncssh.Error, OSError) as e:
            raise ChannelError(f"Could not open shell: {e}") from e
        return ShellChannel(stdin, stdout, stderr)

    async def end(self, session: Any) -> None:
        """Close with a bounded wait, falling back to abort() when close hangs.

        Active PTY channels can keep a graceful close pending indefinitely.
        """
        start_ts = time.time()
        used_abort = False
        try:
            session.close()
        except Exception:
            pass
        try:
            await asyncio.wait_for(session.wait_closed(), timeout=CLOSE_TIMEOUT)
        except Exception:
            try:
                session.abort()
                used_abort = True
            except Exception:
                pass
            try:
                await asyncio.wait_for(session.wait_closed(), timeout=ABORT_TIMEOUT)
            except Exception:
                pass
        logger.info(
            "[Transport] session closed in %.3fs (used_abort=%s)",
            time.time() - start_ts,
            used_abort,
        )
