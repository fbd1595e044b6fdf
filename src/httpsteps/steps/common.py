"""
Command-line plumbing shared by the three example programs.
"""

import argparse
from typing import Callable, List, Optional

from ..config import ServerConfig
from ..lifecycle import run_guarded


def add_server_arguments(parser: argparse.ArgumentParser, stable_ids: bool = False):
    """Flags every program accepts. Unset flags fall back to the environment."""
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)",
    )
    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: all interfaces)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    if stable_ids:
        parser.add_argument(
            "--stable-ids",
            action="store_true",
            help="Keep todo ids stable across deletions instead of positional",
        )


def build_config(args: argparse.Namespace) -> ServerConfig:
    """
    Layer parsed flags over ServerConfig.from_env().

    Raises:
        ValueError: If the environment or flags hold invalid values.
    """
    config = ServerConfig.from_env()

    if args.port is not None:
        config.port = args.port
    if args.host is not None:
        config.host = args.host
    if args.log_level is not None:
        config.log_level = args.log_level
    if getattr(args, "stable_ids", False):
        config.stable_ids = True

    config.validate()
    return config


def run_program(
    run: Callable[[ServerConfig], int],
    prog: str,
    description: str,
    argv: Optional[List[str]] = None,
    stable_ids: bool = False,
) -> int:
    """Parse argv for a single program and run it under the fatal guard."""
    parser = argparse.ArgumentParser(prog=prog, description=description)
    add_server_arguments(parser, stable_ids=stable_ids)
    args = parser.parse_args(argv)
    return run_guarded(lambda: run(build_config(args)))
