"""
=============================================================================
EXAMPLE PROGRAMS
=============================================================================

Three servers, each building on the last:

    ┌──────────────┬─────────────────────────────────────────────────────┐
    │ hello_world  │ GET any path → "hello, world!"                      │
    │ shutdown     │ any request → "pong!", graceful stop on SIGINT      │
    │ routing      │ /todo-item CRUD, graceful stop on SIGINT            │
    └──────────────┴─────────────────────────────────────────────────────┘

Each module has build_server(config) for tests and embedding, run(config)
for the blocking program, and main(argv) for its console script.

=============================================================================
"""

from . import hello_world, shutdown, routing

PROGRAMS = {
    "hello-world": hello_world,
    "shutdown": shutdown,
    "routing": routing,
}

__all__ = ["hello_world", "shutdown", "routing", "PROGRAMS"]
