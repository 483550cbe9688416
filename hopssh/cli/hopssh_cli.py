"""
hopssh CLI - SSH with single jump-host support

Usage:
  hopssh --host web1 tty                                  # Interactive shell
  hopssh --host web1 --bastion jump.example.com tty       # Shell through a bastion
  hopssh --host web1 exec "uptime"                        # One-shot command
  hopssh --host db1 --bastion jump forward --from-port 5433 --to-port 5432

Defaults for --host, --bastion and --user can come from HOPSSH_HOST,
HOPSSH_BASTION and SSH_USERNAME, including via a .env file.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from ..core.config import DEBUG_MODE, DEFAULT_FORWARD_HOST, LOG_LEVEL
from ..core.errors import HopSSHError
from ..core.options import ConnectionOptions, ForwardingRule
from ..services.orchestrator import SSHOrchestrator
from ..utils.log_filters import RedactSecretsFilter

logger = logging.getLogger(__name__)


class HopSSHCLI:
    """
    Main CLI class for hopssh

    Parses arguments, builds ConnectionOptions and runs one orchestrator
    operation to completion.
    """

    def __init__(self, orchestrator_factory=SSHOrchestrator):
        self.orchestrator_factory = orchestrator_factory

    def setup_logging(self, verbose: bool = False) -> None:
        """
        Set up logging configuration

        Args:
            verbose: Enable debug logging
        """
        if verbose or DEBUG_MODE:
            log_level = logging.DEBUG
        else:
            log_level = getattr(logging, LOG_LEVEL, logging.WARNING)
        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        redact = RedactSecretsFilter()
        for handler in logging.getLogger().handlers:
            handler.addFilter(redact)

    def create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser for CLI

        Returns:
            Configured argument parser
        """
        parser = argparse.ArgumentParser(
            prog='hopssh',
            description='SSH shell, command execution and port forwarding with jump-host support',
            epilog='Examples:\n'
                   '  hopssh --host web1 tty\n'
                   '  hopssh --host web1 --bastion jump exec "uptime"\n'
                   '  hopssh --host db1 forward --from-port 5433 --to-port 5432',
            formatter_class=argparse.RawDescriptionHelpFormatter
        )

        parser.add_argument('--host', default=os.getenv('HOPSSH_HOST'),
                            help='Target host (default: $HOPSSH_HOST)')
        parser.add_argument('--port', type=int, default=None,
                            help='Target SSH port (default: 22)')
        parser.add_argument('--bastion', default=os.getenv('HOPSSH_BASTION'),
                            help='Jump host, reached on port 22 (default: $HOPSSH_BASTION)')
        parser.add_argument('--user', default=None,
                            help='Login user (default: $SSH_USERNAME, then $USER)')
        parser.add_argument('--identity', '-i', type=Path, default=None,
                            help='Private key file (default: ~/.ssh/id_rsa when present)')
        parser.add_argument('--password', default=None,
                            help='Password authentication (passed through to the transport)')
        parser.add_argument('--agent-forward', '-A', action='store_true',
                            help='Enable SSH agent forwarding')
        parser.add_argument('--agent-socket', default=None,
                            help='Agent socket (default: $SSH_AUTH_SOCK)')
        parser.add_argument('--no-auto-key', action='store_true',
                            help='Do not load ~/.ssh/id_rsa automatically')
        parser.add_argument('--no-prompt', action='store_true',
                            help='Never prompt for a key passphrase')
        parser.add_argument('--verbose', '-v', action='store_true',
                            help='Enable verbose output')

        commands = parser.add_subparsers(dest='command', metavar='COMMAND')
        commands.add_parser('tty', help='Open an interactive shell')

        exec_parser = commands.add_parser('exec', help='Run one command and exit')
        exec_parser.add_argument('remote_command', metavar='COMMAND', help='Command line to run remotely')

        forward_parser = commands.add_parser('forward', help='Forward a local port through the target')
        forward_parser.add_argument('--from-port', type=int, required=True, help='Local port to listen on')
        forward_parser.add_argument('--to-host', default=DEFAULT_FORWARD_HOST,
                                    help=f'Destination host as seen from the target (default: {DEFAULT_FORWARD_HOST})')
        forward_parser.add_argument('--to-port', type=int, required=True, help='Destination port')

        return parser

    def build_options(self, args: argparse.Namespace) -> ConnectionOptions:
        """
        Translate parsed arguments into ConnectionOptions

        Args:
            args: Parsed command line arguments

        Returns:
            Connection options for the orchestrator
        """
        extra = {}
        if args.password:
            extra['password'] = args.password
        private_key = args.identity.expanduser().read_bytes() if args.identity else None
        return ConnectionOptions(
            end_host=args.host,
            end_port=args.port,
            bastion_host=args.bastion,
            username=args.user,
            private_key=private_key,
            agent_forward=args.agent_forward,
            agent_socket=args.agent_socket,
            skip_auto_private_key=args.no_auto_key,
            no_readline=args.no_prompt,
            extra=extra,
        )

    async def execute(self, orchestrator: SSHOrchestrator, args: argparse.Namespace) -> None:
        """Run the selected command; shutdown always runs afterwards."""
        try:
            if args.command == 'tty':
                await orchestrator.tty()
            elif args.command == 'exec':
                await orchestrator.execute_command(args.remote_command)
            elif args.command == 'forward':
                rule = ForwardingRule(from_port=args.from_port, to_host=args.to_host, to_port=args.to_port)
                await orchestrator.forward(rule)
                print(f"Forwarding localhost:{rule.from_port} -> {rule.to_host}:{rule.to_port} (Ctrl+C to stop)",
                      file=sys.stderr)
                # Serve until cancelled
                await asyncio.Event().wait()
        finally:
            await orchestrator.shutdown()

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run the CLI with provided arguments

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Exit code (0 for success, 1 for error)
        """
        parser = self.create_parser()
        parsed_args = parser.parse_args(args)
        self.setup_logging(parsed_args.verbose)

        if not parsed_args.command:
            parser.print_help()
            return 0
        if not parsed_args.host:
            print("✗ --host (or HOPSSH_HOST) is required", file=sys.stderr)
            return 1

        try:
            orchestrator = self.orchestrator_factory(self.build_options(parsed_args))
            asyncio.run(self.execute(orchestrator, parsed_args))
            return 0
        except KeyboardInterrupt:
            print("\nInterrupted.", file=sys.stderr)
            return 0 if parsed_args.command == 'forward' else 1
        except (HopSSHError, OSError) as e:
            print(f"✗ {e}", file=sys.stderr)
            if parsed_args.verbose:
                logger.exception("hopssh operation failed")
            return 1


def main() -> int:
    """
    Main entry point for hopssh CLI

    Returns:
        Exit code (0 for success, 1 for error)
    """
    load_dotenv()
    cli = HopSSHCLI()
    return cli.run()


if __name__ == '__main__':
    sys.exit(main())
