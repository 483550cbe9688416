"""
Logging utilities for keeping SSH secrets out of logs.

Private key blocks, passwords and passphrases must never appear in log
output, including when whole option sets are logged for diagnostics.
"""

import re
from typing import Any, Dict, Optional


# Patterns to detect potential secrets in free text
SECRET_PATTERNS = [
    # PEM / OpenSSH private key blocks
    (re.compile(r'-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----', re.DOTALL),
     '***SSH_PRIVATE_KEY_REDACTED***'),
    # PuTTY key files carry the key material after a Private-Lines header
    (re.compile(r'(Private-Lines:\s*\d+).*?(Private-MAC:)', re.DOTALL), r'\1 ***REDACTED*** \2'),
    # key=value and key: value styles
    (re.compile(r'(password\s*[=:]\s*)[^\s,&]+', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(passphrase\s*[=:]\s*)[^\s,&]+', re.IGNORECASE), r'\1***REDACTED***'),
    # repr() style dict entries
    (re.compile(r"('(?:password|passphrase|private_?key)'\s*:\s*)(b?'[^']*'|\"[^\"]*\")", re.IGNORECASE),
     r"\1'***REDACTED***'"),
]

# Option names whose values are always redacted
SECRET_FIELDS = {
    'password', 'passphrase', 'private_key', 'privatekey', 'privateKey',
    'client_keys', 'passphrases',
}


def sanitize_string(text: str) -> str:
    """
    Replace potential secrets in a string with placeholders.

    Args:
        text: String that may contain secrets

    Returns:
        Sanitized string
    """
    if not text:
        return text

    result = text
    for pattern, replacement in SECRET_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def sanitize_options(options: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of a transport option dict that is safe to log."""
    result: Dict[str, Any] = {}
    for key, value in options.items():
        if key in SECRET_FIELDS or key.lower() in SECRET_FIELDS:
            result[key] = '***REDACTED***' if value is not None else None
        elif isinstance(value, dict):
            result[key] = sanitize_options(value)
        elif isinstance(value, (bytes, bytearray)):
            result[key] = f'<{len(value)} bytes>'
        elif isinstance(value, str):
            result[key] = sanitize_string(value)
        else:
            result[key] = value
    return result


def sanitize_log_message(message: str, context: Optional[Dict[str, Any]] = None) -> str:
    """
    Sanitize a log message and an optional option/context dict.

    Args:
        message: Log message that may contain secrets
        context: Optional dict appended to the message after sanitizing

    Returns:
        Sanitized log message
    """
    sanitized_msg = sanitize_string(message)
    if context:
        sanitized_msg = f"{sanitized_msg} | Options: {sanitize_options(context)}"
    return sanitized_msg


def mask_credential_value(value: Optional[str], show_prefix: int = 0, show_suffix: int = 4) -> str:
    """
    Mask a credential value, optionally keeping a prefix and suffix.

    Returns "ab***yz" style text, or "***" when the value is empty or too
    short to reveal anything safely.
    """
    if not value:
        return '***'

    if len(value) <= (show_prefix + show_suffix) or len(value) < 6:
        return '***'

    prefix = value[:show_prefix] if show_prefix > 0 else ''
    suffix = value[-show_suffix:] if show_suffix > 0 else ''
    return f"{prefix}***{suffix}"
