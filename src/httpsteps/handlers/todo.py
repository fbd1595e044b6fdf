"""
=============================================================================
TODO ITEM HANDLERS
=============================================================================

REST CRUD over the todo store.

    ┌────────┬──────────────────┬──────────────────────────────────────────┐
    │ Method │ Path             │ Success                                  │
    ├────────┼──────────────────┼──────────────────────────────────────────┤
    │ GET    │ /todo-item       │ 200 JSON array                           │
    │ GET    │ /todo-item/{id}  │ 200 JSON object                          │
    │ HEAD   │ /todo-item/{id}  │ 200, no body                             │
    │ POST   │ /todo-item       │ 201 + Location                           │
    │ PUT    │ /todo-item/{id}  │ 200 + Location                           │
    │ PATCH  │ /todo-item/{id}  │ 200, no body                             │
    │ DELETE │ /todo-item/{id}  │ 200, no body                             │
    └────────┴──────────────────┴──────────────────────────────────────────┘

=============================================================================
VALIDATION ORDER
=============================================================================

Every handler checks, stopping at the first failure:

    1. {id} is an integer         400 `id` must be of type int
    2. {id} names an item         404 `id` not found
    3. the form decodes           400 invalid form
    4. done is a boolean          400 `done` must be of type bool

Nothing is written until all checks pass, so a rejected request leaves
the store untouched.

=============================================================================
"""

import logging
import re
from typing import Optional

from ..http.errors import HTTPError
from ..http.request import HTTPRequest, FormError
from ..http.response import HTTPResponse, ResponseBuilder, ok, created
from ..http.router import Router
from ..http.status_codes import HTTPStatus
from ..todo import TodoItem, TodoStore, ItemNotFound


logger = logging.getLogger(__name__)


MSG_ID_NOT_INT = "`id` must be of type int"
MSG_ID_NOT_FOUND = "`id` not found"
MSG_INVALID_FORM = "invalid form"
MSG_DONE_NOT_BOOL = "`done` must be of type bool"

_INT_PATTERN = re.compile(r"^[+-]?[0-9]+$")
_INT64_MAX = 2 ** 63 - 1

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def parse_int(value: str) -> int:
    """
    Parse a base-10 integer: optional sign, ASCII digits, 64-bit range.

    Stricter than int(): no whitespace, underscores or non-ASCII digits.

    Raises:
        ValueError: If the text is not such an integer.
    """
    if not _INT_PATTERN.match(value):
        raise ValueError(f"invalid integer: {value!r}")
    number = int(value)
    if not -_INT64_MAX - 1 <= number <= _INT64_MAX:
        raise ValueError(f"integer out of range: {value!r}")
    return number


def parse_bool(value: str) -> bool:
    """
    Parse boolean text.

    Accepts 1, t, T, TRUE, true, True and 0, f, F, FALSE, false, False.

    Raises:
        ValueError: For anything else, including "".
    """
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean: {value!r}")


def item_location(request: HTTPRequest, item_id: int) -> str:
    """Absolute URL of an item when the request named a host, else its path."""
    path = f"/todo-item/{item_id}"
    if request.host:
        return f"http://{request.host}{path}"
    return path


class TodoHandler:
    """
    Handlers for /todo-item routes, bound to one store.

        handler = TodoHandler(TodoStore())
        handler.register(router)
    """

    def __init__(self, store: TodoStore):
        self.store = store

    def register(self, router: Router) -> Router:
        """Add all todo routes to the router."""
        router.get("/todo-item")(self.list_items)
        router.get("/todo-item/{id}")(self.read_item)
        router.head("/todo-item/{id}")(self.item_exists)
        router.post("/todo-item")(self.create_item)
        router.put("/todo-item/{id}")(self.replace_item)
        router.patch("/todo-item/{id}")(self.update_item)
        router.delete("/todo-item/{id}")(self.delete_item)
        return router

    # ─────────────────────────────────────────────────────────────────────
    # VALIDATION
    # ─────────────────────────────────────────────────────────────────────

    def _item_id(self, request: HTTPRequest) -> int:
        """
        Checks 1 and 2: the {id} parses and names an existing item.

        The store checks the id again, under its lock, when the change is
        applied, so an item deleted in between still gives 404. With
        positional ids a concurrent delete can shift another item into
        this position; the request then acts on that item.
        """
        try:
            item_id = parse_int(request.path_params.get("id", ""))
        except ValueError:
            raise HTTPError(HTTPStatus.BAD_REQUEST, MSG_ID_NOT_INT)

        if not self.store.exists(item_id):
            raise HTTPError(HTTPStatus.NOT_FOUND, MSG_ID_NOT_FOUND)
        return item_id

    def _form_field(self, request: HTTPRequest, name: str) -> str:
        """Check 3: the form decodes. Returns the field, "" when missing."""
        try:
            return request.form_value(name)
        except FormError as e:
            logger.debug(f"Rejected form on {request.method} {request.path}: {e}")
            raise HTTPError(HTTPStatus.BAD_REQUEST, MSG_INVALID_FORM)

    def _done(self, value: str) -> bool:
        """Check 4: done is boolean text."""
        try:
            return parse_bool(value)
        except ValueError:
            raise HTTPError(HTTPStatus.BAD_REQUEST, MSG_DONE_NOT_BOOL)

    def _full_item(self, request: HTTPRequest) -> TodoItem:
        """Content and done for create/replace; done is required."""
        content = self._form_field(request, "content")
        done = self._done(self._form_field(request, "done"))
        return TodoItem(content=content, done=done)

    # ─────────────────────────────────────────────────────────────────────
    # HANDLERS
    # ─────────────────────────────────────────────────────────────────────

    def _render(self, item_id: int, item: TodoItem) -> dict:
        """Positional ids are implied by list order; stable ids are sent as "Id"."""
        return item.to_dict(item_id if self.store.stable_ids else None)

    def list_items(self, request: HTTPRequest) -> HTTPResponse:
        """GET /todo-item"""
        return ok([self._render(item_id, item) for item_id, item in self.store.entries()])

    def read_item(self, request: HTTPRequest) -> HTTPResponse:
        """GET /todo-item/{id}"""
        item_id = self._item_id(request)
        try:
            item = self.store.get(item_id)
        except ItemNotFound:
            raise HTTPError(HTTPStatus.NOT_FOUND, MSG_ID_NOT_FOUND)
        return ok(self._render(item_id, item))

    def item_exists(self, request: HTTPRequest) -> HTTPResponse:
        """HEAD /todo-item/{id}"""
        self._item_id(request)
        return ok()

    def create_item(self, request: HTTPRequest) -> HTTPResponse:
        """POST /todo-item"""
        item = self._full_item(request)
        item_id = self.store.append(item)
        logger.info(f"Created todo item {item_id}")
        return created(item_location(request, item_id))

    def replace_item(self, request: HTTPRequest) -> HTTPResponse:
        """PUT /todo-item/{id}"""
        item_id = self._item_id(request)
        item = self._full_item(request)
        try:
            self.store.replace(item_id, item)
        except ItemNotFound:
            raise HTTPError(HTTPStatus.NOT_FOUND, MSG_ID_NOT_FOUND)
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("Location", item_location(request, item_id))
            .build())

    def update_item(self, request: HTTPRequest) -> HTTPResponse:
        """
        PATCH /todo-item/{id}

        Only fields sent with a non-empty value change; an empty content
        counts as not sent.
        """
        item_id = self._item_id(request)

        content: Optional[str] = self._form_field(request, "content") or None
        done_text = self._form_field(request, "done")
        done: Optional[bool] = self._done(done_text) if done_text else None

        try:
            self.store.update(item_id, content=content, done=done)
        except ItemNotFound:
            raise HTTPError(HTTPStatus.NOT_FOUND, MSG_ID_NOT_FOUND)
        return ok()

    def delete_item(self, request: HTTPRequest) -> HTTPResponse:
        """DELETE /todo-item/{id}"""
        item_id = self._item_id(request)
        try:
            self.store.remove(item_id)
        except ItemNotFound:
            raise HTTPError(HTTPStatus.NOT_FOUND, MSG_ID_NOT_FOUND)
        logger.info(f"Deleted todo item {item_id}")
        return ok()


def todo_routes(store: TodoStore, router: Optional[Router] = None) -> Router:
    """Router with the todo routes bound to store."""
    if router is None:
        router = Router()
    return TodoHandler(store).register(router)
