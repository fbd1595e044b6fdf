"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for the socket.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 201 Created\r\n                 ← status line            │
    │    Location: http://localhost:8080/todo-item/0\r\n                  │
    │    Content-Length: 0\r\n                    ← added by to_bytes()    │
    │    Date: Sat, 17 Oct 2026 12:00:00 GMT\r\n  ← added by to_bytes()    │
    │    Server: httpsteps/1.0\r\n                ← added by to_bytes()    │
    │    \r\n                                                              │
    │    [body]                                   ← omitted for HEAD       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Handlers answer with small plain-text bodies for errors and compact JSON
for data:

    text(HTTPStatus.NOT_FOUND, "`id` not found")
    ResponseBuilder().json([{"Content": "buy milk", "Done": False}]).build()

=============================================================================
BUILDER PATTERN
=============================================================================

    ResponseBuilder()
        .status(HTTPStatus.CREATED)
        .header("Location", "/todo-item/0")
        .build()

Every method but build() returns the builder, so calls chain.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Union, List
import json

from .status_codes import HTTPStatus


TEXT_PLAIN = "text/plain; charset=utf-8"
APPLICATION_JSON = "application/json"


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Use ResponseBuilder or the helpers at the bottom of this module
    rather than filling the fields by hand.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK" """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "httpsteps/1.0", include_body: bool = True) -> bytes:
        """
        Serialize the response to bytes for sending over the socket.

        Content-Length, Date and Server are added when missing. With
        include_body=False (HEAD requests) the headers still describe the
        body but the body itself is not sent.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return header_bytes + self.body if include_body else header_bytes


class ResponseBuilder:
    """Fluent builder for constructing HTTP responses."""

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = TEXT_PLAIN) -> "ResponseBuilder":
        """Plain text body, UTF-8 encoded."""
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """
        Compact JSON body: no spaces after separators, no trailing newline.

            {"Content":"buy milk","Done":false}
        """
        self._body = json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = APPLICATION_JSON
        return self

    def close_connection(self) -> "ResponseBuilder":
        """Tell the client this connection ends after the response."""
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231), always in GMT.

    Example: Sat, 17 Oct 2026 12:00:00 GMT
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def ok(body: Union[str, bytes, dict, list] = b"") -> HTTPResponse:
    """
    200 OK. dict/list bodies become JSON, str bodies plain text.
    The default is an empty body.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body)
    else:
        builder.body(body)
    return builder.build()


def created(location: str) -> HTTPResponse:
    """201 Created with a Location header and no body."""
    return ResponseBuilder().status(HTTPStatus.CREATED).header("Location", location).build()


def text(status: HTTPStatus, message: str) -> HTTPResponse:
    """Any status with a short plain-text body, used for handler errors."""
    return ResponseBuilder().status(status).text(message).build()


def not_found_page() -> HTTPResponse:
    """404 for a path that matches no route."""
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .header("X-Content-Type-Options", "nosniff")
        .text("404 page not found\n")
        .build())


def method_not_allowed(allowed_methods: List[str]) -> HTTPResponse:
    """405 with the Allow header listing the methods the path accepts."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .header("X-Content-Type-Options", "nosniff")
        .text("Method Not Allowed\n")
        .build())


def internal_error() -> HTTPResponse:
    """500 without internal details."""
    return text(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error\n")


def service_unavailable() -> HTTPResponse:
    """503 when no worker can take the connection."""
    return (ResponseBuilder()
        .status(HTTPStatus.SERVICE_UNAVAILABLE)
        .text("Service Unavailable\n")
        .close_connection()
        .build())
