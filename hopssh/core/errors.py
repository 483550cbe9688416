"""
Exception hierarchy for hopssh.

Every failure raised by the orchestrator derives from HopSSHError so CLI
callers can catch one type and print the reason.
"""

from typing import Optional, Union


class HopSSHError(Exception):
    """Base class for all hopssh errors."""
    pass


class ConfigurationError(HopSSHError):
    """Raised when the connection options cannot be turned into a usable setup."""
    pass


class SSHConnectionError(HopSSHError):
    """Raised when the transport fails while connecting to a host."""

    def __init__(self, host: str, message: str) -> None:
        super().__init__(f"Connection to {host} failed: {message}")
        self.host = host


class ChannelError(HopSSHError):
    """Raised when a forwarded (direct-tcpip) or shell channel cannot be opened."""

    def __init__(self, message: str, dest_host: Optional[str] = None, dest_port: Optional[int] = None) -> None:
        if dest_host is not None:
            message = f"Forwarded channel to {dest_host}:{dest_port} failed: {message}"
        super().__init__(message)
        self.dest_host = dest_host
        self.dest_port = dest_port


class RemoteStreamError(HopSSHError):
    """Raised when a remote shell writes to its error stream."""

    def __init__(self, payload: Union[bytes, str], command: Optional[str] = None) -> None:
        text = payload.decode('utf-8', errors='replace') if isinstance(payload, bytes) else payload
        super().__init__(text.strip() or "remote error stream produced data")
        self.payload = payload
        self.command = command
