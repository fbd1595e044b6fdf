"""
Step 0: answer every GET with "hello, world!".

There is no shutdown handling: the server runs on the main thread until
the process is killed or the listener fails.
"""

import sys
from typing import List, Optional

from ..config import ServerConfig
from ..handlers import hello_world
from ..middleware import AccessLogMiddleware
from ..server import HTTPServer, configure_logging
from .common import run_program


DESCRIPTION = "Answer every GET request with hello, world!"


def build_server(config: ServerConfig) -> HTTPServer:
    server = HTTPServer(config)
    server.use(AccessLogMiddleware(log_format=config.log_format))
    server.get("/{path...}")(hello_world)
    return server


def run(config: ServerConfig) -> int:
    configure_logging(config.log_level)
    server = build_server(config)

    print(f"server listening on {config.listen_address}", flush=True)

    # Only returns by raising
    server.serve_forever()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    return run_program(run, "httpsteps-hello-world", DESCRIPTION, argv)


if __name__ == "__main__":
    sys.exit(main())
