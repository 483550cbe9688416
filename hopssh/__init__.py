"""
hopssh: SSH session orchestration with single jump-host support.
"""

from .core.errors import (
    ChannelError,
    ConfigurationError,
    HopSSHError,
    RemoteStreamError,
    SSHConnectionError,
)
from .core.options import ConnectionOptions, ForwardingRule
from .services.orchestrator import SSHOrchestrator

__version__ = '0.1.0'

__all__ = [
    'ChannelError',
    'ConfigurationError',
    'HopSSHError',
    'RemoteStreamError',
    'SSHConnectionError',
    'ConnectionOptions',
    'ForwardingRule',
    'SSHOrchestrator',
]
