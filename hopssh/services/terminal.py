"""
Terminal I/O for hopssh.

Owns the process's standard streams on behalf of the shell driver and the
passphrase prompt.
"""

from __future__ import annotations

import asyncio
import getpass
import logging
import sys
from typing import Optional, TextIO

from ..core.config import PASSPHRASE_PROMPT

logger = logging.getLogger(__name__)


class TerminalIO:
    """Process stdio as seen by the orchestrator."""

    def __init__(self, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> None:
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._stdin_transport: Optional[asyncio.BaseTransport] = None

    def prompt_passphrase(self, prompt: str = PASSPHRASE_PROMPT) -> str:
        """Read a passphrase without echoing it."""
        return getpass.getpass(prompt, stream=self._stdout)

    def write_output(self, data: bytes) -> None:
        buffer = getattr(self._stdout, 'buffer', None)
        if buffer is not None:
            buffer.write(data)
        else:
            self._stdout.write(data.decode('utf-8', errors='replace'))
        self._stdout.flush()

    async def open_input(self) -> asyncio.StreamReader:
        """Attach an asyncio reader to stdin (POSIX pipes and ttys)."""
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        self._stdin_transport, _ = await loop.connect_read_pipe(lambda: protocol, self._stdin)
        return reader

    def close_input(self) -> None:
        """Detach from stdin; the stream is not usable afterwards."""
        transport, self._stdin_transport = self._stdin_transport, None
        if transport is not None:
            try:
                transport.close()
            except Exception as e:
                logger.debug(f"[Terminal] stdin detach failed: {e}")
