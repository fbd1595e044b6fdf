"""
Fixed-response handlers for the first two examples.
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok


HELLO_BODY = "hello, world!"
PONG_BODY = "pong!"


def hello_world(request: HTTPRequest) -> HTTPResponse:
    """Answer every GET with a greeting."""
    return ok(HELLO_BODY)


def pong(request: HTTPRequest) -> HTTPResponse:
    """Answer any request at all."""
    return ok(PONG_BODY)
