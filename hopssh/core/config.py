"""
Environment-driven settings shared across hopssh.

Values are read once at import.
"""

import os

# Environment variables consulted when options leave a field unset
USERNAME_ENV = 'SSH_USERNAME'
GENERIC_USER_ENV = 'USER'
AGENT_SOCKET_ENV = 'SSH_AUTH_SOCK'

DEFAULT_SSH_PORT = 22
BASTION_PORT = 22

# Bind side of the bastion's forwarded channel; see DESIGN.md
BASTION_BIND_HOST = '127.0.0.1'
BASTION_BIND_PORT = 22

DEFAULT_FORWARD_HOST = 'localhost'
DEFAULT_KEY_NAME = 'id_rsa'

PASSPHRASE_PROMPT = 'Please type in the passphrase for your private key: '

# Teardown waits (seconds) before escalating close() to abort()
CLOSE_TIMEOUT = float(os.environ.get('HOPSSH_CLOSE_TIMEOUT', '2.5'))
ABORT_TIMEOUT = float(os.environ.get('HOPSSH_ABORT_TIMEOUT', '1.0'))

DEBUG_MODE = os.environ.get('HOPSSH_DEBUG', 'false').lower() == 'true'
LOG_LEVEL = os.environ.get('HOPSSH_LOG_LEVEL', 'WARNING').upper()

COPY_CHUNK_SIZE = 64 * 1024
