"""
=============================================================================
TODO ITEM STORE
=============================================================================

The in-memory collection behind the routing example. It lives for the
life of the process and starts empty.

=============================================================================
IDENTITY
=============================================================================

TodoStore (default): an item's id is its position in the list.

    append A, B, C      ids:  A=0  B=1  C=2
    remove 0            ids:  B=0  C=1        ← later items shift down

StableTodoStore: ids are handed out from a counter and never reused, so
deleting an item does not renumber the others. Its items are serialized
with an "Id" field, since list order no longer gives the id.

    append A, B, C      ids:  A=0  B=1  C=2
    remove 0            ids:  B=1  C=2
    append D            ids:  B=1  C=2  D=3

Both stores expose the same methods, so handlers do not care which one
they are given.

=============================================================================
CONCURRENCY
=============================================================================

Handlers run on many worker threads at once. Every method takes the
store's lock, and items cross the lock boundary only as copies, so a
handler can never observe or cause a half-applied change.

=============================================================================
"""

import itertools
import logging
import threading
from dataclasses import dataclass, replace as dc_replace
from typing import Dict, List, Optional, Sequence, Tuple


logger = logging.getLogger(__name__)


@dataclass
class TodoItem:
    """
    A todo item: free text plus a completion flag.

    Serialized with capitalized field names, plus "Id" when one is given:

        {"Content": "buy milk", "Done": false}
        {"Id": 3, "Content": "buy milk", "Done": false}
    """
    content: str = ""
    done: bool = False

    def to_dict(self, item_id: Optional[int] = None) -> dict:
        data = {"Content": self.content, "Done": self.done}
        if item_id is not None:
            data = {"Id": item_id, **data}
        return data


class ItemNotFound(LookupError):
    """No item with the requested id."""

    def __init__(self, item_id: int):
        super().__init__(f"todo item {item_id} not found")
        self.item_id = item_id


class TodoStore:
    """
    Lock-guarded list of todo items addressed by position.

        store = TodoStore()
        item_id = store.append(TodoItem("buy milk"))   # 0
        store.update(item_id, done=True)
        store.get(item_id)                              # TodoItem("buy milk", True)
        store.remove(item_id)
    """

    # Whether ids outlive deletions of earlier items
    stable_ids = False

    def __init__(self):
        self._items: List[TodoItem] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _index(self, item_id: int) -> int:
        """Position of item_id in _items. Caller holds the lock."""
        if 0 <= item_id < len(self._items):
            return item_id
        raise ItemNotFound(item_id)

    def _new_id(self) -> int:
        """Id of an item just appended. Caller holds the lock."""
        return len(self._items) - 1

    def _all_ids(self) -> Sequence[int]:
        """Ids of all items, in order. Caller holds the lock."""
        return range(len(self._items))

    def list(self) -> List[TodoItem]:
        """Copies of all items, in order."""
        with self._lock:
            return [dc_replace(item) for item in self._items]

    def entries(self) -> List[Tuple[int, TodoItem]]:
        """(id, copy) pairs for all items, in order."""
        with self._lock:
            return [(item_id, dc_replace(item)) for item_id, item in zip(self._all_ids(), self._items)]

    def exists(self, item_id: int) -> bool:
        with self._lock:
            try:
                self._index(item_id)
            except ItemNotFound:
                return False
            return True

    def get(self, item_id: int) -> TodoItem:
        """
        Raises:
            ItemNotFound: If there is no such item.
        """
        with self._lock:
            return dc_replace(self._items[self._index(item_id)])

    def append(self, item: TodoItem) -> int:
        """Add an item at the end and return its id."""
        with self._lock:
            self._items.append(dc_replace(item))
            item_id = self._new_id()
        logger.debug(f"Created todo item {item_id}")
        return item_id

    def replace(self, item_id: int, item: TodoItem) -> int:
        """
        Overwrite an item wholesale.

        Raises:
            ItemNotFound: If there is no such item.
        """
        with self._lock:
            self._items[self._index(item_id)] = dc_replace(item)
        logger.debug(f"Replaced todo item {item_id}")
        return item_id

    def update(self, item_id: int, content: Optional[str] = None, done: Optional[bool] = None) -> TodoItem:
        """
        Change only the fields that are not None.

        Raises:
            ItemNotFound: If there is no such item.
        """
        with self._lock:
            item = self._items[self._index(item_id)]
            if content is not None:
                item.content = content
            if done is not None:
                item.done = done
            updated = dc_replace(item)
        logger.debug(f"Updated todo item {item_id}")
        return updated

    def remove(self, item_id: int) -> TodoItem:
        """
        Delete an item. In this store later items move down one position.

        Raises:
            ItemNotFound: If there is no such item.
        """
        with self._lock:
            removed = self._items.pop(self._index(item_id))
        logger.debug(f"Removed todo item {item_id}")
        return removed


class StableTodoStore(TodoStore):
    """
    Todo store whose ids survive deletions.

    Ids come from a counter starting at 0; list() keeps insertion order.
    """

    stable_ids = True

    def __init__(self):
        super().__init__()
        self._ids: List[int] = []
        self._positions: Dict[int, int] = {}
        self._counter = itertools.count()

    def _index(self, item_id: int) -> int:
        try:
            return self._positions[item_id]
        except KeyError:
            raise ItemNotFound(item_id) from None

    def _all_ids(self) -> Sequence[int]:
        return self._ids

    def _new_id(self) -> int:
        item_id = next(self._counter)
        self._positions[item_id] = len(self._ids)
        self._ids.append(item_id)
        return item_id

    def remove(self, item_id: int) -> TodoItem:
        with self._lock:
            position = self._index(item_id)
            removed = self._items.pop(position)
            del self._ids[position]
            del self._positions[item_id]
            for later in self._ids[position:]:
                self._positions[later] -= 1
        logger.debug(f"Removed todo item {item_id}")
        return removed

    def ids(self) -> List[int]:
        """Ids of all items, in list() order."""
        with self._lock:
            return list(self._all_ids())


def new_store(stable_ids: bool = False) -> TodoStore:
    """The store the routing example should use."""
    return StableTodoStore() if stable_ids else TodoStore()
