"""
=============================================================================
HTTPSTEPS - Three Progressive HTTP Servers on Raw Sockets
=============================================================================

    step 0  hello-world   GET any path → "hello, world!"
    step 1  shutdown      any request → "pong!", graceful stop on SIGINT
    step 2  routing       todo item CRUD over /todo-item

All three run on the same small HTTP/1.1 stack built from the standard
library.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httpsteps/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m httpsteps)
    ├── config.py            # ServerConfig dataclass
    ├── server.py            # HTTPServer, ServerClosed, configure_logging
    ├── lifecycle.py         # Serve → drain state machine, fatal guard
    ├── todo.py              # TodoItem and the todo stores
    ├── core/                # Low-level components
    │   ├── socket_server.py # Listening socket and accept loop
    │   ├── connection.py    # Per-client connection
    │   └── thread_pool.py   # Worker threads
    ├── http/                # HTTP protocol components
    │   ├── request.py       # Request and form parsing
    │   ├── response.py      # Response building
    │   ├── router.py        # Method + path template routing
    │   ├── errors.py        # HTTPError
    │   └── status_codes.py  # HTTP status enum
    ├── middleware/          # Middleware pipeline and access log
    ├── handlers/            # hello, pong and todo handlers
    └── steps/               # The three runnable programs

=============================================================================
QUICK START
=============================================================================

    from httpsteps import HTTPServer, ServerConfig
    from httpsteps.http import ok

    server = HTTPServer(ServerConfig(port=8080))

    @server.get("/hello/{name}")
    def hello(request):
        return ok(f"hello, {request.path_params['name']}!")

    server.serve_forever()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer, ServerClosed, configure_logging
from .lifecycle import Lifecycle, InterruptSignal, ServerState, run_guarded
from .todo import TodoItem, TodoStore, StableTodoStore, ItemNotFound

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "ServerClosed",
    "configure_logging",
    "Lifecycle",
    "InterruptSignal",
    "ServerState",
    "run_guarded",
    "TodoItem",
    "TodoStore",
    "StableTodoStore",
    "ItemNotFound",
    "__version__",
]
