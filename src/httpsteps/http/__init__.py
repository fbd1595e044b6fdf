"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Turns bytes from TCP into structured HTTP messages and back.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       bytes → HTTPRequest, form decoding                 │
    │ response.py      HTTPResponse, ResponseBuilder, text/JSON helpers   │
    │ router.py        method + path template → handler                   │
    │ errors.py        HTTPError, raised by handlers                      │
    │ status_codes.py  HTTPStatus with reason phrases                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, FormError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    created,
    text,
    not_found_page,
    method_not_allowed,
    internal_error,
    service_unavailable,
)
from .errors import HTTPError
from .router import Router, Route
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "FormError",
    "parse_request",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "text",
    "not_found_page",
    "method_not_allowed",
    "internal_error",
    "service_unavailable",

    # Errors
    "HTTPError",

    # Routing
    "Router",
    "Route",

    # Status codes
    "HTTPStatus",
]
