"""
Unit tests for the todo stores.
"""

import threading

import pytest

from httpsteps.todo import TodoItem, TodoStore, StableTodoStore, ItemNotFound, new_store


def filled(store: TodoStore, *contents: str) -> TodoStore:
    for content in contents:
        store.append(TodoItem(content=content))
    return store


class TestTodoItem:

    def test_defaults(self):
        assert TodoItem() == TodoItem(content="", done=False)

    def test_to_dict_uses_capitalized_keys(self):
        assert TodoItem("buy milk", True).to_dict() == {"Content": "buy milk", "Done": True}

    def test_to_dict_with_id(self):
        assert list(TodoItem("x").to_dict(4)) == ["Id", "Content", "Done"]


class TestTodoStore:
    """Positional ids: an item's id is its index."""

    def test_append_returns_index(self):
        store = TodoStore()
        assert store.append(TodoItem("a")) == 0
        assert store.append(TodoItem("b")) == 1
        assert len(store) == 2

    def test_create_then_read(self):
        store = filled(TodoStore(), "a", "b")
        item_id = store.append(TodoItem("buy milk", False))
        assert store.get(item_id) == TodoItem("buy milk", False)

    @pytest.mark.parametrize("item_id", [-1, 3, 100])
    def test_out_of_range(self, item_id):
        store = filled(TodoStore(), "a", "b", "c")

        assert not store.exists(item_id)
        with pytest.raises(ItemNotFound) as exc_info:
            store.get(item_id)
        assert exc_info.value.item_id == item_id

        with pytest.raises(ItemNotFound):
            store.replace(item_id, TodoItem("x"))
        with pytest.raises(ItemNotFound):
            store.update(item_id, done=True)
        with pytest.raises(ItemNotFound):
            store.remove(item_id)

    def test_out_of_range_after_history(self):
        store = filled(TodoStore(), "a", "b")
        store.remove(0)
        store.remove(0)
        assert not store.exists(0)

    def test_remove_shifts_later_items(self):
        store = filled(TodoStore(), "a", "b", "c", "d")

        removed = store.remove(1)

        assert removed.content == "b"
        assert len(store) == 3
        assert store.get(0).content == "a"
        assert store.get(1).content == "c"
        assert store.get(2).content == "d"
        assert store.entries() == [(0, TodoItem("a")), (1, TodoItem("c")), (2, TodoItem("d"))]

    def test_replace(self):
        store = filled(TodoStore(), "a")
        assert store.replace(0, TodoItem("b", True)) == 0
        assert store.get(0) == TodoItem("b", True)

    def test_update_only_given_fields(self):
        store = TodoStore()
        store.append(TodoItem("buy milk", False))

        assert store.update(0, done=True) == TodoItem("buy milk", True)
        assert store.update(0, content="buy bread") == TodoItem("buy bread", True)
        assert store.update(0) == TodoItem("buy bread", True)

    def test_items_are_copies(self):
        store = TodoStore()
        original = TodoItem("a")
        store.append(original)

        original.content = "changed"
        store.get(0).content = "changed too"
        store.list()[0].done = True

        assert store.get(0) == TodoItem("a", False)

    def test_list_keeps_order(self):
        store = filled(TodoStore(), "a", "b", "c")
        assert [item.content for item in store.list()] == ["a", "b", "c"]

    def test_concurrent_appends(self):
        store = TodoStore()

        def worker():
            for _ in range(200):
                store.append(TodoItem("x"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 1600


class TestStableTodoStore:
    """Counter ids that survive deletions."""

    def test_ids_survive_removal(self):
        store = filled(StableTodoStore(), "a", "b", "c")

        store.remove(0)

        assert store.ids() == [1, 2]
        assert store.get(1).content == "b"
        assert store.get(2).content == "c"
        assert not store.exists(0)

    def test_ids_are_not_reused(self):
        store = filled(StableTodoStore(), "a", "b")
        store.remove(1)
        assert store.append(TodoItem("c")) == 2
        assert store.ids() == [0, 2]

    def test_remove_middle_keeps_lookup_consistent(self):
        store = filled(StableTodoStore(), "a", "b", "c", "d")

        store.remove(1)
        store.update(3, done=True)

        assert [item.content for item in store.list()] == ["a", "c", "d"]
        assert store.get(3) == TodoItem("d", True)
        assert store.get(2).content == "c"

    def test_entries_pair_ids_with_items(self):
        store = filled(StableTodoStore(), "a", "b", "c")
        store.remove(1)

        assert store.entries() == [(0, TodoItem("a")), (2, TodoItem("c"))]

    def test_unknown_ids(self):
        store = filled(StableTodoStore(), "a")
        with pytest.raises(ItemNotFound):
            store.get(5)
        with pytest.raises(ItemNotFound):
            store.remove(-1)


def test_new_store():
    assert type(new_store()) is TodoStore
    assert type(new_store(stable_ids=True)) is StableTodoStore
