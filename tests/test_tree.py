"""
Path tree helper tests.
"""

import pytest

from project_config.errors import InvalidPathError
from project_config.tree import (
    delete_value,
    flatten,
    get_value,
    is_present,
    parent_path,
    path_depth,
    prune_empty,
    set_value,
    split_path,
    unflatten,
    values_equal,
)


class TestPaths:
    """Path parsing helpers."""

    def test_split_path(self):
        assert split_path("sections.news.handle") == ["sections", "news", "handle"]

    @pytest.mark.parametrize("path", ["", "a..b", ".a", "a."])
    def test_invalid_paths_rejected(self, path):
        with pytest.raises(InvalidPathError):
            split_path(path)

    def test_parent_of_nested_path(self):
        assert parent_path("a.b.c") == "a.b"

    def test_single_segment_is_its_own_parent(self):
        assert parent_path("a") == "a"

    def test_depth(self):
        assert path_depth("a") == 1
        assert path_depth("a.b.c") == 3


class TestGetSetDelete:
    """Reading and writing by path."""

    def test_set_then_get_round_trip(self):
        tree = {}
        set_value(tree, "a.b.c", 42)

        assert get_value(tree, "a.b.c") == 42
        assert tree == {"a": {"b": {"c": 42}}}

    def test_get_missing_intermediate_returns_none(self):
        assert get_value({"a": {}}, "a.b.c") is None

    def test_get_through_scalar_returns_none(self):
        assert get_value({"a": 1}, "a.b") is None

    def test_delete_then_get_returns_none(self):
        tree = {"a": {"b": 1, "c": 2}}
        delete_value(tree, "a.b")

        assert get_value(tree, "a.b") is None
        assert tree == {"a": {"c": 2}}

    def test_delete_missing_path_is_noop(self):
        tree = {"a": 1}
        delete_value(tree, "x.y.z")
        delete_value(tree, "a.b")

        assert tree == {"a": 1}

    def test_scalar_becomes_subtree(self):
        tree = {"a": 1}
        set_value(tree, "a.b", 2)

        assert tree == {"a": {"b": 2}}

    def test_subtree_becomes_scalar(self):
        tree = {"a": {"b": 2}}
        set_value(tree, "a", "flat")

        assert tree == {"a": "flat"}

    def test_only_passed_tree_is_mutated(self):
        first, second = {}, {}
        set_value(first, "a.b", 1)

        assert second == {}


class TestFlatten:
    """Flattening and rebuilding trees."""

    def test_flatten_emits_only_leaves(self):
        tree = {"a": {"b": 1, "c": {"d": True}}, "e": None, "f": {}}

        assert flatten(tree) == {"a.b": 1, "a.c.d": True, "e": None}

    def test_lists_are_leaves(self):
        assert flatten({"a": {"tags": ["x", "y"]}}) == {"a.tags": ["x", "y"]}

    def test_flatten_unflatten_round_trip(self):
        tree = {
            "system": {"name": "Site", "live": True},
            "sections": {"abc": {"handle": "news", "sites": {"s1": {"enabled": 1}}}},
            "version": 3.5,
        }

        assert unflatten(flatten(tree)) == tree

    def test_prune_empty_removes_nested_empties(self):
        tree = {"a": {"b": {}, "c": {"d": {}}}, "e": 1}

        assert prune_empty(tree) == {"e": 1}


class TestValueComparison:
    """Structural equality and presence."""

    def test_key_order_ignored(self):
        assert values_equal({"a": 1, "b": 2}, {"b": 2, "a": 1})

    @pytest.mark.parametrize("a,b", [(1, True), (1, 1.0), (1, "1"), (0, None)])
    def test_types_distinguished(self, a, b):
        assert not values_equal(a, b)

    def test_presence(self):
        assert not is_present(None)
        assert not is_present({})
        assert is_present(0)
        assert is_present(False)
        assert is_present({"a": 1})
