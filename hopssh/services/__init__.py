"""
Services module for hopssh
Contains credential and agent resolution, the asyncssh transport, shell and
forwarding drivers, and the orchestrator that ties them together
"""

from .agent import AgentSocketResolver, PlatformProbe, PosixPlatform, WindowsPlatform, detect_platform
from .credentials import CredentialResolver, looks_encrypted
from .forwarding_proxy import ForwardingProxy
from .orchestrator import SSHOrchestrator
from .shell_driver import ShellDriver
from .terminal import TerminalIO
from .transport import AsyncSSHTransport, ForwardedChannel, ShellChannel, Transport

__all__ = [
    'AgentSocketResolver',
    'PlatformProbe',
    'PosixPlatform',
    'WindowsPlatform',
    'detect_platform',
    'CredentialResolver',
    'looks_encrypted',
    'ForwardingProxy',
    'SSHOrchestrator',
    'ShellDriver',
    'TerminalIO',
    'AsyncSSHTransport',
    'ForwardedChannel',
    'ShellChannel',
    'Transport',
]
