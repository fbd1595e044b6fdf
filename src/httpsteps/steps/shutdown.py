"""
Step 1: answer any request with "pong!" and shut down cleanly on Ctrl+C.

    $ httpsteps-shutdown
    listening on port :8080
    ^C
    goodbye :)
"""

import sys
from typing import List, Optional

from ..config import ServerConfig
from ..handlers import pong
from ..lifecycle import Lifecycle, InterruptSignal
from ..middleware import AccessLogMiddleware
from ..server import HTTPServer, configure_logging
from .common import run_program


DESCRIPTION = "Answer any request with pong! and drain gracefully on SIGINT"
FAREWELL = "goodbye :)"


def build_server(config: ServerConfig) -> HTTPServer:
    server = HTTPServer(config)
    server.use(AccessLogMiddleware(log_format=config.log_format))
    server.route("/{path...}")(pong)
    return server


def serve(server: HTTPServer, interrupt: Optional[InterruptSignal] = None) -> int:
    """Announce, serve until interrupted, drain, say goodbye."""
    print(f"listening on port {server.config.listen_address}", flush=True)
    Lifecycle(server, interrupt=interrupt).run()
    print(FAREWELL, flush=True)
    return 0


def run(config: ServerConfig) -> int:
    configure_logging(config.log_level)
    return serve(build_server(config))


def main(argv: Optional[List[str]] = None) -> int:
    return run_program(run, "httpsteps-shutdown", DESCRIPTION, argv)


if __name__ == "__main__":
    sys.exit(main())
