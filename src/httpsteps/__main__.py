"""
=============================================================================
HTTPSTEPS CLI ENTRY POINT
=============================================================================

    python -m httpsteps hello-world              # step 0 on :8080
    python -m httpsteps shutdown -p 3000         # step 1 on :3000
    python -m httpsteps routing --stable-ids     # step 2, stable todo ids

Flags override HTTPSTEPS_* environment variables, which override the
defaults in ServerConfig.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .lifecycle import run_guarded
from .steps import PROGRAMS
from .steps.common import add_server_arguments, build_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httpsteps",
        description="Three small HTTP servers, from hello world to a todo CRUD API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m httpsteps hello-world
  python -m httpsteps shutdown --port 3000
  HTTPSTEPS_LOG_FORMAT=json python -m httpsteps routing
        """,
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"httpsteps {__version__}",
    )

    subparsers = parser.add_subparsers(dest="program", metavar="PROGRAM")
    subparsers.required = True

    for name, module in PROGRAMS.items():
        sub = subparsers.add_parser(name, help=module.DESCRIPTION, description=module.DESCRIPTION)
        add_server_arguments(sub, stable_ids=name == "routing")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    program = PROGRAMS[args.program]
    return run_guarded(lambda: program.run(build_config(args)))


if __name__ == "__main__":
    sys.exit(main())
