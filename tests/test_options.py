"""
Tests for odata_client.resources.options module.
"""

import pytest

from odata_client.resources.options import (
    Alias,
    Keyed,
    ListOf,
    OptionHandler,
    QueryOptions,
    Scalar,
    get_key,
    has_key,
    is_empty,
    push,
    remove,
    set_key,
    unset_key,
    unwrap,
    wrap,
)


class TestShapeFunctions:
    """Tests for the pure option shape functions."""

    def test_wrap_tags_shapes(self):
        assert wrap(None) is None
        assert wrap(10) == Scalar(10)
        assert wrap(["a", "b"]) == ListOf(("a", "b"))
        assert wrap({"Name": "Milk"}) == Keyed({"Name": "Milk"})

    def test_wrap_copies_containers(self):
        raw = ["a"]
        value = wrap(raw)
        raw.append("b")
        assert unwrap(value) == ["a"]

    def test_unwrap_returns_copies(self):
        value = Keyed({"a": [1]})
        plain = unwrap(value)
        plain["a"].append(2)
        assert unwrap(value) == {"a": [1]}

    def test_push_promotes_scalar(self):
        assert push(None, "a") == ListOf(("a",))
        assert push(Scalar("a"), "b") == ListOf(("a", "b"))
        assert push(ListOf(("a", "b")), "c") == ListOf(("a", "b", "c"))

    def test_push_is_pure(self):
        original = ListOf(("a",))
        push(original, "b")
        assert original == ListOf(("a",))

    def test_remove_demotes_to_scalar(self):
        assert remove(ListOf(("a", "b")), "b") == Scalar("a")
        assert remove(ListOf(("a", "b", "c")), "b") == ListOf(("a", "c"))

    def test_remove_last_element(self):
        assert remove(ListOf(("a",)), "a") is None
        assert remove(Scalar("a"), "a") is None
        assert remove(Scalar("a"), "b") == Scalar("a")

    def test_set_key_on_empty_and_keyed(self):
        assert set_key(None, "Name", "Milk") == Keyed({"Name": "Milk"})
        assert set_key(Keyed({"a": 1}), "b", 2) == Keyed({"a": 1, "b": 2})

    def test_set_key_on_scalar_appends_keyed_element(self):
        assert set_key(Scalar("Price gt 5"), "Name", "Milk") == ListOf(("Price gt 5", {"Name": "Milk"}))

    def test_set_key_updates_existing_keyed_element(self):
        value = ListOf(("Price gt 5", {"Name": "Milk"}))
        assert set_key(value, "ID", 1) == ListOf(("Price gt 5", {"Name": "Milk", "ID": 1}))

    def test_unset_key(self):
        assert unset_key(Keyed({"a": 1, "b": 2}), "a") == Keyed({"b": 2})
        assert unset_key(Keyed({"a": 1}), "a") is None
        assert unset_key(ListOf(("x", {"a": 1})), "a") == Scalar("x")
        assert unset_key(Scalar("x"), "a") == Scalar("x")

    def test_get_and_has_key(self):
        value = ListOf(("x", {"a": 1}))
        assert get_key(value, "a") == 1
        assert get_key(value, "b", "dflt") == "dflt"
        assert has_key(Keyed({"a": None}), "a")
        assert not has_key(Scalar("a"), "a")

    def test_is_empty(self):
        assert is_empty(None)
        assert is_empty(Scalar(""))
        assert is_empty(ListOf(()))
        assert is_empty(Keyed({}))
        assert not is_empty(Scalar(0))


class TestOptionHandler:
    """Tests for OptionHandler."""

    def test_push_and_remove(self):
        opts = QueryOptions()
        select = opts.option("select", "Name").push("Price")
        assert select.value() == ["Name", "Price"]
        select.remove("Price")
        assert select.value() == "Name"
        assert select == "Name"

    def test_at(self):
        opts = QueryOptions()
        handler = opts.option("select", ["Name", "Price"])
        assert handler.at(1) == "Price"
        assert opts.option("top", 5).at(0) == 5
        with pytest.raises(IndexError):
            opts.option("skip").at(0)

    def test_keyed_access(self):
        opts = QueryOptions()
        handler = opts.option("filter").set("Name", "Milk").assign({"ID": 1})
        assert handler.get("Name") == "Milk"
        assert handler.has("ID")
        handler.unset("Name")
        assert handler.value() == {"ID": 1}

    def test_clear_and_empty(self):
        opts = QueryOptions()
        handler = opts.option("top", 10)
        assert handler
        handler.clear()
        assert handler.empty()
        assert not opts.has("top")

    def test_handles_share_the_store(self):
        store = {}
        OptionHandler(store, "key").set("ID", 1)
        assert OptionHandler(store, "key").value() == {"ID": 1}


class TestQueryOptions:
    """Tests for QueryOptions."""

    def test_params_canonical_order(self):
        opts = QueryOptions()
        opts.option("count", True)
        opts.option("expand", "Category")
        opts.option("top", 10)
        opts.option("filter", "Price gt 5")
        opts.option("select", ["Name", "Price"])
        assert list(opts.params()) == ["$select", "$filter", "$top", "$expand", "$count"]

    def test_remove_and_keep(self):
        opts = QueryOptions()
        opts.option("select", "Name")
        opts.option("top", 1)
        opts.option("format", "json")
        opts.remove("top")
        assert opts.values() == {"select": "Name", "format": "json"}
        opts.keep("format")
        assert opts.values() == {"format": "json"}

    def test_clone_is_independent(self):
        opts = QueryOptions()
        opts.option("select", ["Name"])
        clone = opts.clone()
        clone.option("select").push("Price")
        assert opts.option("select").value() == ["Name"]
        assert clone != opts

    def test_alias_append_or_update(self):
        opts = QueryOptions()
        opts.alias("p", 1)
        opts.alias("p", 2)
        opts.alias("q", "x")
        assert opts.aliases() == [Alias("p", 2), Alias("q", "x")]
        assert opts.alias("p") == Alias("p", 2)
        assert opts.params() == {"@p": "2", "@q": "'x'"}

    def test_unknown_alias_raises(self):
        with pytest.raises(KeyError):
            QueryOptions().alias("missing")

    def test_alias_renders_as_reference(self):
        assert str(Alias("p1", 10)) == "@p1"

    def test_custom_overrides_reserved(self):
        opts = QueryOptions()
        opts.option("top", 5)
        opts.option("custom", {"$top": "7", "debug": True})
        assert opts.params() == {"$top": "7", "debug": "true"}
