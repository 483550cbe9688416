"""
Byte pumps between asyncio-style stream pairs.

Both local asyncio streams and asyncssh SSHReader/SSHWriter objects expose
read(), write(), drain() and close(), so the same pumps splice TCP clients,
socket-pair bridges and forwarded channels.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..core.config import COPY_CHUNK_SIZE

logger = logging.getLogger(__name__)


def _finish_writing(writer: Any) -> None:
    """Half-close when the writer supports it, otherwise close outright."""
    try:
        if writer.can_write_eof():
            writer.write_eof()
        else:
            writer.close()
    except (OSError, RuntimeError, AttributeError):
        # Peer already gone
        writer.close()


async def pump(reader: Any, writer: Any, label: str = "pump") -> int:
    """Copy bytes from reader to writer until EOF; returns the byte count."""
    total = 0
    try:
        while True:
            data = await reader.read(COPY_CHUNK_SIZE)
            if not data:
                break
            writer.write(data)
            await writer.drain()
            total += len(data)
    except Exception as e:
        # Socket errors and asyncssh channel errors both end the copy
        logger.debug(f"[Streams] {label} stopped: {e}")
    else:
        _finish_writing(writer)
    logger.debug("[Streams] %s finished after %d bytes", label, total)
    return total


async def splice(left_reader: Any, left_writer: Any, right_reader: Any, right_writer: Any,
                 label: str = "splice") -> None:
    """Pump bytes in both directions until both sides are done, then close both."""
    try:
        await asyncio.gather(
            pump(left_reader, right_writer, f"{label} ->"),
            pump(right_reader, left_writer, f"{label} <-"),
        )
    finally:
        for writer in (left_writer, right_writer):
            try:
                writer.close()
            except Exception:
                pass
