"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    basic.py   hello_world and pong, the fixed responses of the first two
               examples
    todo.py    TodoHandler, the CRUD routes of the routing example

A handler is any callable taking an HTTPRequest and returning an
HTTPResponse. It may raise HTTPError to answer with an error status.

=============================================================================
"""

from .basic import hello_world, pong
from .todo import TodoHandler, todo_routes, parse_int, parse_bool

__all__ = [
    "hello_world",
    "pong",
    "TodoHandler",
    "todo_routes",
    "parse_int",
    "parse_bool",
]
