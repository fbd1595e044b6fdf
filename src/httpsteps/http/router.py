"""
=============================================================================
URL ROUTER
=============================================================================

Maps a request's method and path to a handler function.

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   PATCH /todo-item/3                                                 │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  GET    /todo-item        → list_items                       │   │
    │   │  GET    /todo-item/{id}   → read_item                        │   │
    │   │  HEAD   /todo-item/{id}   → item_exists                      │   │
    │   │  POST   /todo-item        → create_item                      │   │
    │   │  PUT    /todo-item/{id}   → replace_item                     │   │
    │   │  PATCH  /todo-item/{id}   → update_item     ← MATCH!         │   │
    │   │  DELETE /todo-item/{id}   → delete_item                      │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   update_item(request)    request.path_params == {"id": "3"}         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ROUTE PATTERNS
=============================================================================

1. STATIC PATHS: exact match

   /todo-item        matches /todo-item only

2. SEGMENT PARAMETERS ({name}): one non-empty path segment

   /todo-item/{id}   matches /todo-item/7 → {"id": "7"}
                     not /todo-item/, not /todo-item/7/x

3. REMAINDER PARAMETERS ({name...}): the rest of the path, maybe empty

   /{path...}        matches /, /a, /a/b/c → {"path": "a/b/c"}
                     must be the last segment

Patterns compile to anchored regexes:

    /todo-item/{id}  →  ^/todo\\-item/(?P<id>[^/]+)$
    /{path...}       →  ^/(?P<path>.*)$

=============================================================================
FALLBACKS
=============================================================================

    route for path + method      → handler
    HEAD, only a GET route       → GET handler (the server drops the body)
    route for path, wrong method → 405 Method Not Allowed + Allow header
    no route for path            → 404 page not found

A handler that raises HTTPError gets a plain-text response with the
error's status and message.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List, Tuple
import logging
import re

from .errors import HTTPError
from .request import HTTPRequest
from .response import HTTPResponse, text, not_found_page, method_not_allowed


logger = logging.getLogger(__name__)


# A function that takes a request and returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]

_PARAM_SEGMENT = re.compile(r"^\{([A-Za-z_][A-Za-z0-9_]*)(\.\.\.)?\}$")


@dataclass
class Route:
    """
    A registered route: a path template bound to a handler.

        Route(
            path="/todo-item/{id}",
            method="GET",            # None = any method
            handler=read_item,
        )
    """
    path: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    """The matched route and the parameters captured from the path."""
    route: Route
    params: Dict[str, str]


def compile_pattern(path: str) -> Tuple[re.Pattern, List[str]]:
    """
    Compile a path template into an anchored regex.

    Raises:
        ValueError: If the template is malformed.
    """
    if not path.startswith("/"):
        raise ValueError(f"Route path must start with '/': {path!r}")

    param_names: List[str] = []
    regex_parts = ["^"]
    segments = path.split("/")[1:]

    for i, segment in enumerate(segments):
        regex_parts.append("/")

        match = _PARAM_SEGMENT.match(segment)
        if not match:
            if "{" in segment or "}" in segment:
                raise ValueError(f"Bad path segment {segment!r} in {path!r}")
            regex_parts.append(re.escape(segment))
            continue

        param_name, remainder = match.groups()
        if param_name in param_names:
            raise ValueError(f"Duplicate parameter {param_name!r} in {path!r}")
        param_names.append(param_name)

        if remainder:
            if i != len(segments) - 1:
                raise ValueError(f"{{{param_name}...}} must be the last segment in {path!r}")
            regex_parts.append(f"(?P<{param_name}>.*)")
        else:
            regex_parts.append(f"(?P<{param_name}>[^/]+)")

    regex_parts.append("$")
    return re.compile("".join(regex_parts)), param_names


class Router:
    """
    HTTP request router with path parameters.

    Routes are registered with decorators:

        router = Router()

        @router.get("/todo-item/{id}")
        def read_item(request):
            item_id = request.path_params["id"]
            ...

    First registered match wins.
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a handler for a path template and method (None = any).
        """
        pattern, param_names = compile_pattern(path)
        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        logger.debug(f"Registered route {route.method or 'ANY'} {path}")
        return route

    def route(self, path: str, method: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method)
            return handler
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "GET")

    def head(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "HEAD")

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "POST")

    def put(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "PUT")

    def patch(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "PATCH")

    def delete(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE")

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def _find(self, method: Optional[str], path: str) -> Optional[RouteMatch]:
        for route in self._routes:
            if route.method != method and route.method is not None:
                continue
            match = route._pattern.match(path)
            if match:
                return RouteMatch(route=route, params=match.groupdict())
        return None

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the route for a method and path.

        HEAD falls back to a GET route when no HEAD route matches.
        """
        method = method.upper()
        found = self._find(method, path)
        if found is None and method == "HEAD":
            found = self._find("GET", path)
        return found

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods with a route for this path, for the Allow header."""
        methods = set()
        for route in self._routes:
            if not route._pattern.match(path):
                continue
            if route.method is None:
                return ["DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT"]
            methods.add(route.method)
            if route.method == "GET":
                methods.add("HEAD")
        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request and return the handler's response.

        HTTPError raised by the handler becomes a plain-text response.
        Any other exception propagates to the server.
        """
        found = self.match(request.method, request.path)

        if found is None:
            allowed = self.get_allowed_methods(request.path)
            if allowed:
                return method_not_allowed(allowed)
            return not_found_page()

        request.path_params = found.params

        try:
            return found.route.handler(request)
        except HTTPError as e:
            logger.debug(f"{request.method} {request.path} -> {int(e.status)} {e.message}")
            return text(e.status, e.message)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes, in registration order."""
        return list(self._routes)

    def print_routes(self, file=None) -> None:
        """
        Print all registered routes (useful for debugging).

            GET      /todo-item
            GET      /todo-item/{id}
            ANY      /{path...}
        """
        for route in self._routes:
            print(f"  {route.method or 'ANY':8} {route.path}", file=file)
