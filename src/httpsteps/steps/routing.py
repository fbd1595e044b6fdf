"""
Step 2: the todo item CRUD server.

Same lifecycle as step 1, with the /todo-item routes over a store that
lives as long as the process.
"""

import logging
import sys
from typing import List, Optional

from ..config import ServerConfig
from ..handlers import todo_routes
from ..middleware import AccessLogMiddleware
from ..server import HTTPServer, configure_logging
from ..todo import TodoStore, new_store
from .common import run_program
from .shutdown import serve


logger = logging.getLogger(__name__)


DESCRIPTION = "Todo item CRUD server with graceful shutdown"


def build_server(config: ServerConfig, store: Optional[TodoStore] = None) -> HTTPServer:
    if store is None:
        store = new_store(config.stable_ids)

    server = HTTPServer(config, router=todo_routes(store))
    server.use(AccessLogMiddleware(log_format=config.log_format))
    return server


def run(config: ServerConfig) -> int:
    configure_logging(config.log_level)
    if config.stable_ids:
        logger.info("Todo ids are stable across deletions")
    return serve(build_server(config))


def main(argv: Optional[List[str]] = None) -> int:
    return run_program(run, "httpsteps-routing", DESCRIPTION, argv, stable_ids=True)


if __name__ == "__main__":
    sys.exit(main())
