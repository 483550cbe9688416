"""
SSH agent socket resolution.

The platform-specific fallback lives behind a small PlatformProbe interface
so the resolver itself has no OS branches.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Mapping, Optional

from ..core.config import AGENT_SOCKET_ENV
from ..core.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Well-known identifier for the Windows agent (PuTTY's Pageant)
PAGEANT_AGENT = 'pageant'


class PlatformProbe:
    """Capabilities the orchestrator needs from the host platform."""

    name = 'unknown'

    def default_agent(self) -> Optional[str]:
        """Agent identifier to use when neither option nor environment gives one."""
        return None


class PosixPlatform(PlatformProbe):
    name = 'posix'


class WindowsPlatform(PlatformProbe):
    name = 'windows'

    def default_agent(self) -> Optional[str]:
        return PAGEANT_AGENT


def detect_platform() -> PlatformProbe:
    if sys.platform == 'win32':
        return WindowsPlatform()
    return PosixPlatform()


class AgentSocketResolver:
    """Resolve the agent socket for agent forwarding."""

    def __init__(self, platform: Optional[PlatformProbe] = None,
                 environ: Optional[Mapping[str, str]] = None) -> None:
        self._platform = platform or detect_platform()
        self._environ = environ if environ is not None else os.environ

    def resolve(self, agent_socket: Optional[str] = None) -> str:
        """Return the agent socket, or raise ConfigurationError.

        Precedence: explicit socket, then SSH_AUTH_SOCK, then the platform
        default.
        """
        candidate = agent_socket or self._environ.get(AGENT_SOCKET_ENV) or self._platform.default_agent()
        if not candidate:
            raise ConfigurationError(
                f"SSH agent socket is not provided and not resolvable from environment "
                f"(set agent_socket or {AGENT_SOCKET_ENV})"
            )
        logger.debug("[Agent] using agent %s on %s", candidate, self._platform.name)
        return candidate
