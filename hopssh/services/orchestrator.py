"""
SSH Orchestrator: establish sessions (direct or through one bastion) and
drive a shell, a command or a port forward over them.

Flow:
- establish(): resolve credentials and agent, connect directly or through
  the bastion chain, register the session
- tty() / execute_command(): establish, then hand the session to ShellDriver
- forward(): establish, then bind a ForwardingProxy listener
- shutdown(): end every registered session and close the listener

Security:
- Passphrases and key material stay in memory and are never logged
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from ..core.config import BASTION_BIND_HOST, BASTION_BIND_PORT, BASTION_PORT
from ..core.options import ConnectionOptions, ForwardingRule, ResolvedCredentials
from ..core.registry import SessionRegistry
from ..utils.logging import mask_credential_value
from .agent import AgentSocketResolver, PlatformProbe
from .credentials import CredentialResolver
from .forwarding_proxy import ForwardingProxy
from .shell_driver import ShellDriver
from .terminal import TerminalIO
from .transport import AsyncSSHTransport, Transport

logger = logging.getLogger(__name__)


class SSHOrchestrator:
    """Connect to a target host, optionally via a bastion, and drive it."""

    def __init__(self, options: Union[ConnectionOptions, Mapping[str, Any]],
                 transport: Optional[Transport] = None,
                 platform: Optional[PlatformProbe] = None,
                 terminal: Optional[TerminalIO] = None,
                 environ: Optional[Mapping[str, str]] = None) -> None:
        if not isinstance(options, ConnectionOptions):
            options = ConnectionOptions.from_mapping(options)
        self._terminal = terminal or TerminalIO()
        self._transport = transport or AsyncSSHTransport()
        self._credentials = CredentialResolver(self._terminal, environ=environ)
        self._agents = AgentSocketResolver(platform, environ=environ)
        self._registry = SessionRegistry()
        # Only touches the local filesystem (default key), never the network
        self.options = self._credentials.normalize(options)

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    # -------------------- Public operations --------------------
    async def tty(self) -> None:
        session = await self.establish()
        logger.debug("[Orchestrator] Opening tty")
        await self._shell_driver().run(session)

    async def execute_command(self, command: str) -> None:
        session = await self.establish()
        logger.debug('[Orchestrator] Executing command "%s"', command)
        await self._shell_driver().run(session, command)

    async def forward(self, rule: Optional[ForwardingRule] = None, **kwargs: Any) -> ForwardingProxy:
        """Establish a session and start forwarding local `from_port`.

        Accepts a ForwardingRule or its fields as keyword arguments. Returns
        once the local listener is bound.
        """
        if rule is None:
            rule = ForwardingRule(**kwargs)
        if self._registry.listener is not None:
            raise RuntimeError("A forwarding listener is already active")
        session = await self.establish()
        proxy = ForwardingProxy(self._transport, session, rule)
        await proxy.start()
        self._registry.attach_listener(proxy)
        return proxy

    async def shutdown(self) -> None:
        """End all sessions in registration order, then close the listener. Never raises."""
        logger.debug("[Orchestrator] Shutdown connections")
        await self._registry.close_all(self._transport.end)

    # -------------------- Connection establishment --------------------
    async def establish(self) -> Any:
        """Open and register a session to the target host."""
        logger.debug("[Orchestrator] establish options=%s", self.options.to_public_dict())
        credentials = self._resolve()
        if self.options.bastion_host:
            return await self._connect_via_bastion(self.options.bastion_host, credentials)
        return await self._connect(self.options.end_host, credentials.port, credentials)

    def _resolve(self) -> ResolvedCredentials:
        credentials = self._credentials.resolve(self.options)
        if credentials.agent_forward:
            # Raises ConfigurationError before any network I/O
            credentials.agent_path = self._agents.resolve(self.options.agent_socket)
        return credentials

    async def _connect_via_bastion(self, bastion_host: str, credentials: ResolvedCredentials) -> Any:
        logger.debug('[Orchestrator] Connecting to bastion host "%s"', bastion_host)
        bastion = await self._connect(bastion_host, BASTION_PORT, credentials)

        end_host, end_port = self.options.end_host, credentials.port
        # The bind side is fixed at 127.0.0.1:22 whatever the target port is
        channel = await self._transport.open_forwarded_channel(
            bastion, BASTION_BIND_HOST, BASTION_BIND_PORT, end_host, end_port,
        )
        return await self._connect(end_host, end_port, credentials, channel=channel)

    async def _connect(self, host: str, port: int, credentials: ResolvedCredentials,
                       channel: Any = None) -> Any:
        safe_username = mask_credential_value(credentials.username, show_prefix=2, show_suffix=2) \
            if credentials.username else '<auto>'
        logger.info(f'[Orchestrator] Connecting to "{host}:{port}" as {safe_username}')
        session = await self._transport.connect(
            host, port, credentials, extra=self.options.extra, channel=channel,
        )
        handle = self._registry.register(session)
        logger.debug("[Orchestrator] session %d ready for %s", handle, host)
        return session

    # -------------------- Shell plumbing --------------------
    def _shell_driver(self) -> ShellDriver:
        return ShellDriver(self._transport, self._terminal, on_close=self._on_shell_closed)

    async def _on_shell_closed(self, session: Any) -> None:
        handle = self._registry.handle_of(session)
        if handle is not None:
            self._registry.discard(handle)
        await self._transport.end(session)
        await self.shutdown()
