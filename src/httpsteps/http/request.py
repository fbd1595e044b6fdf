"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into structured HTTPRequest objects and
decodes form-encoded request data.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    PATCH /todo-item/0?x=1 HTTP/1.1\r\n         ← request line       │
    │    ──┬── ─────┬──── ─┬─   ────┬───                                  │
    │    Method    Path  Query   Version                                  │
    │                                                                      │
    │    Host: localhost:8080\r\n                     ← headers            │
    │    Content-Type: application/x-www-form-urlencoded\r\n              │
    │    Content-Length: 9\r\n                                            │
    │    \r\n                                         ← end of headers     │
    │    done=true                                    ← body               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FORM DECODING
=============================================================================

A form is a set of name → [values] pairs taken from the query string and,
for POST, PUT and PATCH requests declared as
application/x-www-form-urlencoded, from the body:

    content=buy+milk&done=false   →   {"content": ["buy milk"],
                                        "done": ["false"]}

Decoding is strict. Unlike urllib.parse.parse_qs, these are errors:

    done=%zz          bad percent escape
    a=1;b=2           ';' is not a pair separator

Bytes that are not UTF-8 are kept as U+FFFD rather than rejected:

    content=%ff       →   {"content": ["\ufffd"]}

Body values come first in each list, so the body wins for form_value().

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, List, Tuple
from urllib.parse import parse_qs, urlparse, unquote, unquote_to_bytes
import re


FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Methods whose body may carry form data
FORM_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code that should be returned to the client:
        400 Bad Request     - Malformed request syntax
        405 Method Not Allowed - Unknown method
        413 Payload Too Large - Request exceeds size limit
        505 HTTP Version Not Supported - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class FormError(ValueError):
    """Raised when query string or form body data is malformed."""


def _unescape(value: str) -> str:
    if _BAD_ESCAPE.search(value):
        raise FormError(f"invalid URL escape in {value!r}")
    return unquote_to_bytes(value.replace("+", " ")).decode("utf-8", errors="replace")


def parse_form_data(data: str) -> Dict[str, List[str]]:
    """
    Decode application/x-www-form-urlencoded data.

    Raises:
        FormError: On a ';' in a pair or a bad escape.
    """
    form: Dict[str, List[str]] = {}
    for pair in data.split("&"):
        if not pair:
            continue
        if ";" in pair:
            raise FormError("invalid semicolon separator in query")
        name, _, value = pair.partition("=")
        form.setdefault(_unescape(name), []).append(_unescape(value))
    return form


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    Attributes:
        method:         The HTTP method (GET, POST, PUT, DELETE, etc.)
        path:           Request path without the query string
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Headers with LOWERCASE keys
        query_params:   Leniently parsed query string, name → [values]
        query_string:   The raw query string
        body:           Raw request body
        path_params:    Values captured by the router from the path template
        client_address: (ip, port) of the client
        raw:            The original request bytes
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    query_string: str = ""
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict)
    client_address: Tuple[str, int] = ("", 0)
    raw: bytes = b""

    _form: Optional[Dict[str, List[str]]] = field(default=None, repr=False)

    @property
    def content_type(self) -> Optional[str]:
        """The Content-Type header without parameters, lowercased."""
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps the connection unless "Connection: close";
        HTTP/1.0 closes it unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        values = self.query_params.get(name, [])
        return values[0] if values else default

    # ─────────────────────────────────────────────────────────────────────
    # FORMS
    # ─────────────────────────────────────────────────────────────────────

    def parse_form(self) -> Dict[str, List[str]]:
        """
        Decode the request's form data, once.

        The body is read only for POST, PUT and PATCH requests whose
        Content-Type is application/x-www-form-urlencoded; the query
        string is always read.

        Raises:
            FormError: If either source is malformed.
        """
        if self._form is not None:
            return self._form

        form: Dict[str, List[str]] = {}

        if self.method in FORM_BODY_METHODS and self.content_type == FORM_CONTENT_TYPE:
            body_text = self.body.decode("utf-8", errors="replace")
            for name, values in parse_form_data(body_text).items():
                form.setdefault(name, []).extend(values)

        for name, values in parse_form_data(self.query_string).items():
            form.setdefault(name, []).extend(values)

        self._form = form
        return form

    def form_value(self, name: str) -> str:
        """
        First value of a form field, or "" when it is missing.

        Raises:
            FormError: If the form data is malformed.
        """
        values = self.parse_form().get(name)
        return values[0] if values else ""


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

        Raw bytes
            │
            ├── 1. Size check             too large → 413
            ├── 2. Split at \\r\\n\\r\\n  missing → 400
            ├── 3. Request line           bad → 400 / 405 / 505
            ├── 4. Headers                lowercase names
            ├── 5. Body                   Content-Length bytes
            ▼
        HTTPRequest
    """

    VALID_METHODS = {
        "GET",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "HEAD",
        "OPTIONS",
        "TRACE",
        "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: Tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_string, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=parse_qs(query_string, keep_blank_values=True),
            query_string=query_string,
            body=body[:content_length],
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str, str]:
        """
        Parse "METHOD SP REQUEST-URI SP HTTP-VERSION".

        Returns:
            (method, path, raw query string, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"

        if not path.startswith("/"):
            raise HTTPParseError(f"Invalid request target: {uri}")

        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..", status_code=400)

        return method, path, parsed.query, version

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Continuation lines (leading whitespace) extend the previous header;
        repeated headers are joined with ", ".
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> HTTPRequest:
    """Parse one request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
