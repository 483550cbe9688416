"""
Connection and forwarding option types.

ConnectionOptions is what callers hand to the orchestrator; ResolvedCredentials
is the normalized form the transport consumes.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Mapping, Optional

from .config import DEFAULT_FORWARD_HOST

# camelCase spellings accepted by from_mapping, for callers porting configs
_KEY_ALIASES = {
    'endHost': 'end_host',
    'endPort': 'end_port',
    'port': 'end_port',
    'bastionHost': 'bastion_host',
    'privateKey': 'private_key',
    'agentForward': 'agent_forward',
    'agentSocket': 'agent_socket',
    'skipAutoPrivateKey': 'skip_auto_private_key',
    'noReadline': 'no_readline',
}


@dataclass
class ConnectionOptions:
    end_host: str
    # end_port and its alias `port` address the target; the bastion is always on 22
    end_port: Optional[int] = None
    bastion_host: Optional[str] = None
    username: Optional[str] = None
    # write-only secrets (never logged or returned by to_public_dict)
    private_key: Optional[bytes] = field(default=None, repr=False)
    passphrase: Optional[str] = field(default=None, repr=False)
    agent_forward: bool = False
    agent_socket: Optional[str] = None
    skip_auto_private_key: bool = False
    no_readline: bool = False
    # transport-specific keyword arguments, passed to asyncssh.connect untouched
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def port(self) -> Optional[int]:
        return self.end_port

    @port.setter
    def port(self, value: Optional[int]) -> None:
        self.end_port = value

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ConnectionOptions:
        """Build options from a dict, routing unknown keys into `extra`."""
        known = set(cls.__dataclass_fields__) - {'extra'}
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = dict(data.get('extra') or {})
        for key, value in data.items():
            if key == 'extra':
                continue
            name = _KEY_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
            else:
                extra[key] = value
        if isinstance(kwargs.get('private_key'), str):
            kwargs['private_key'] = kwargs['private_key'].encode('utf-8')
        if 'end_host' not in kwargs:
            raise ValueError("end_host is required")
        return cls(extra=extra, **kwargs)

    def to_public_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        # Remove secrets
        d.pop('private_key', None)
        d.pop('passphrase', None)
        d['extra'] = sorted(self.extra)
        d['has_private_key'] = self.private_key is not None
        return d


@dataclass
class ResolvedCredentials:
    username: Optional[str]
    port: int
    private_key: Optional[bytes] = field(default=None, repr=False)
    passphrase: Optional[str] = field(default=None, repr=False)
    agent_forward: bool = False
    agent_path: Optional[str] = None


@dataclass
class ForwardingRule:
    from_port: int
    to_port: int
    to_host: str = DEFAULT_FORWARD_HOST

    def __post_init__(self) -> None:
        if not self.to_host:
            self.to_host = DEFAULT_FORWARD_HOST
