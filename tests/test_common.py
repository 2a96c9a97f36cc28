"""Tests for overlaycue.common utilities."""

import math

from overlaycue.common import index_path, is_finite_number, is_number, iter_nodes, key_path
from overlaycue.errors import CircularReferenceError, ValidationError


class TestNumberChecks:
    def test_bool_is_not_a_number(self):
        assert not is_number(True)
        assert is_number(0)
        assert is_number(1.5)

    def test_finite(self):
        assert is_finite_number(3)
        assert not is_finite_number(math.inf)
        assert not is_finite_number(math.nan)


class TestPaths:
    def test_key_path(self):
        assert key_path("", "cues") == "cues"
        assert key_path("cues[0]", "root") == "cues[0].root"

    def test_index_path(self):
        assert index_path("children", 2) == "children[2]"


class TestIterNodes:
    def test_depth_first_with_paths(self):
        root = {
            "id": "g", "eType": "group",
            "children": [
                {"id": "inner", "eType": "group", "children": [{"id": "a", "eType": "text"}]},
                {"id": "b", "eType": "image"},
            ],
        }
        walked = [(node["id"], path) for node, path in iter_nodes(root, "root")]
        assert walked == [
            ("g", "root"),
            ("inner", "root.children[0]"),
            ("a", "root.children[0].children[0]"),
            ("b", "root.children[1]"),
        ]

    def test_children_ignored_on_leaves(self):
        leaf = {"id": "t", "eType": "text", "children": [{"id": "x"}]}
        assert [n["id"] for n, _ in iter_nodes(leaf, "root")] == ["t"]


class TestErrors:
    def test_validation_error_path_prefix(self):
        err = ValidationError("must be a list", "cues")
        assert str(err) == "cues: must be a list"
        assert err.path == "cues"

    def test_circular_chain_message(self):
        err = CircularReferenceError(["define.a", "define.b", "define.a"])
        assert "define.a -> define.b -> define.a" in str(err)
        assert isinstance(err, ValueError)
