"""
Credential resolution for hopssh.

Fills in the username, port and private key the caller left unset, and
obtains a passphrase for keys that look encrypted.

Security:
- Key material and passphrases are never logged
- The passphrase prompt happens at most once per resolver
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional, Union

from ..core.config import (
    DEFAULT_KEY_NAME,
    DEFAULT_SSH_PORT,
    GENERIC_USER_ENV,
    USERNAME_ENV,
)
from ..core.options import ConnectionOptions, ResolvedCredentials
from ..utils.logging import mask_credential_value
from .terminal import TerminalIO

logger = logging.getLogger(__name__)


def looks_encrypted(private_key: Optional[Union[bytes, str]]) -> bool:
    """Approximate check for an encrypted private key.

    This is a case-insensitive substring test for "encrypted", not a key
    format parse. PEM keys with a "Proc-Type: 4,ENCRYPTED" header and PKCS#8
    "ENCRYPTED PRIVATE KEY" blocks are caught; new-format OpenSSH keys and
    PuTTY keys (which always carry an "Encryption:" header) are not detected
    reliably, and any unencrypted key whose text happens to contain the word
    is flagged.
    """
    if not private_key:
        return False
    if isinstance(private_key, bytes):
        text = private_key.decode('utf-8', errors='ignore')
    else:
        text = private_key
    return 'encrypted' in text.lower()


def default_key_path(home: Optional[Path] = None) -> Path:
    return (home or Path.home()) / '.ssh' / DEFAULT_KEY_NAME


class CredentialResolver:
    """Derive effective credentials from partially specified options."""

    def __init__(self, terminal: Optional[TerminalIO] = None,
                 environ: Optional[Mapping[str, str]] = None,
                 home: Optional[Path] = None) -> None:
        self._terminal = terminal or TerminalIO()
        self._environ = environ if environ is not None else os.environ
        self._home = home
        self._prompted_passphrase: Optional[str] = None
        self._prompted = False

    def normalize(self, options: ConnectionOptions) -> ConnectionOptions:
        """Fill in username, port and the default private key in place."""
        if not options.username:
            options.username = self._environ.get(USERNAME_ENV) or self._environ.get(GENERIC_USER_ENV)
        if not options.end_port:
            options.end_port = DEFAULT_SSH_PORT
        if not options.private_key and not options.agent_forward and not options.skip_auto_private_key:
            options.private_key = self._load_default_key()
        return options

    def _load_default_key(self) -> Optional[bytes]:
        key_path = default_key_path(self._home)
        if not key_path.is_file():
            logger.debug("[Credentials] no default key at %s", key_path)
            return None
        try:
            key = key_path.read_bytes()
        except OSError as e:
            logger.warning(f"[Credentials] Could not read default key {key_path}: {e}")
            return None
        logger.debug("[Credentials] loaded default key from %s", key_path)
        return key

    def resolve(self, options: ConnectionOptions) -> ResolvedCredentials:
        """Produce the credential set used for every connect attempt."""
        passphrase = options.passphrase
        if looks_encrypted(options.private_key) and not passphrase:
            if options.no_readline:
                logger.info("[Credentials] private key looks encrypted but prompting is disabled")
            else:
                passphrase = self._prompt_once()

        logger.debug(
            "[Credentials] resolved user=%s port=%s key=%s passphrase=%s",
            mask_credential_value(options.username, show_prefix=2, show_suffix=2) if options.username else '<auto>',
            options.end_port,
            options.private_key is not None,
            passphrase is not None,
        )
        return ResolvedCredentials(
            username=options.username,
            port=options.end_port or DEFAULT_SSH_PORT,
            private_key=options.private_key,
            passphrase=passphrase,
            agent_forward=options.agent_forward,
        )

    def _prompt_once(self) -> str:
        if not self._prompted:
            self._prompted_passphrase = self._terminal.prompt_passphrase()
            self._prompted = True
        return self._prompted_passphrase
