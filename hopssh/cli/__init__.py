"""
CLI module for hopssh

Command-line front end over SSHOrchestrator: interactive shells, one-shot
commands and local port forwarding, each optionally through a bastion.
"""

from .hopssh_cli import main as cli_main, HopSSHCLI

__all__ = [
    'cli_main',
    'HopSSHCLI',
]
