"""Custom log filters for hopssh."""
import logging

from .logging import sanitize_string


class RedactSecretsFilter(logging.Filter):
    """Scrub private keys, passwords and passphrases from log records.

    Installed on the root handlers by the CLI so that records emitted by
    asyncssh and hopssh alike are covered.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Rewrite the record's message in place; never drops a record.

        Args:
            record: The log record to scrub

        Returns:
            Always True
        """
        try:
            message = record.getMessage()
        except Exception:
            return True

        sanitized = sanitize_string(message)
        if sanitized != message:
            record.msg = sanitized
            record.args = None
        return True
