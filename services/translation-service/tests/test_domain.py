import sys
from pathlib import Path

import pytest

# Ensure `services/translation-service` is on sys.path so `import app` works when
# running tests from the monorepo root.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import domain  # noqa: E402
from app.domain import Leaf, ObjectNode, PathKey  # noqa: E402


def _pairs(*items):
    return [(PathKey.parse(k), v) for k, v in items]


def _keys(pairs):
    return [str(k) for k, _ in pairs]


def test_path_key_split_and_join():
    key = PathKey.parse("home.header.title")
    assert key.segments == ("home", "header", "title")
    assert str(key) == "home.header.title"
    assert key.first == "home"
    assert key.last == "title"
    assert key.is_nested

    single = PathKey.parse("footer")
    assert single.segments == ("footer",)
    assert not single.is_nested
    assert domain.join_key(domain.split_key("a.b.c")) == "a.b.c"


def test_path_key_orders_segment_wise():
    keys = [PathKey.parse(k) for k in ["b", "a.c", "a.b.z", "a.b"]]
    assert [str(k) for k in sorted(keys)] == ["a.b", "a.b.z", "a.c", "b"]
    assert PathKey.parse("a.b") == PathKey(("a", "b"))


@pytest.mark.parametrize("bad", ["", "a..b", ".a", "a."])
def test_path_key_rejects_empty_segments(bad):
    with pytest.raises(domain.InvalidKeyError):
        PathKey.parse(bad)


def test_unflatten_nests_dotted_keys():
    tree = domain.unflatten(_pairs(("home.title", "Hi"), ("home.subtitle", "Sub"), ("footer", "Bye")))
    assert domain.to_json(tree) == {"home": {"title": "Hi", "subtitle": "Sub"}, "footer": "Bye"}


def test_unflatten_deep_chain_and_sibling_graft():
    tree = domain.unflatten(_pairs(("a.x", "1"), ("a.b.c.d", "2"), ("a.b.c.e", "3")))
    assert domain.to_json(tree) == {"a": {"x": "1", "b": {"c": {"d": "2", "e": "3"}}}}


def test_leaf_before_nested_key_keeps_leaf():
    builder = domain.TreeBuilder()
    assert builder.add(PathKey.parse("a"), "leaf") is True
    assert builder.add(PathKey.parse("a.b"), "nested") is False

    tree = builder.build()
    assert tree.children["a"] == Leaf("leaf")
    assert builder.dropped == [PathKey.parse("a.b")]
    assert domain.to_json(tree) == {"a": "leaf"}


def test_intermediate_leaf_blocks_deeper_keys():
    builder = domain.TreeBuilder()
    builder.add_all(_pairs(("a.b", "1"), ("a.b.c.d", "2"), ("a.e", "3")))

    assert domain.to_json(builder.build()) == {"a": {"b": "1", "e": "3"}}
    assert builder.dropped == [PathKey.parse("a.b.c.d")]


def test_single_segment_key_overwrites_existing_object():
    tree = domain.unflatten(_pairs(("a.b", "1"), ("a", "2")))
    assert domain.to_json(tree) == {"a": "2"}


def test_exact_path_overwrites_previous_value():
    tree = domain.unflatten(_pairs(("a.b", "1"), ("a.b", "2")))
    assert domain.to_json(tree) == {"a": {"b": "2"}}


def test_unflatten_is_idempotent():
    pairs = _pairs(("x.y", "1"), ("x", "2"), ("x.y.z", "3"), ("p.q.r", "4"), ("p.s", "5"))
    assert domain.unflatten(pairs) == domain.unflatten(pairs)


def test_flatten_keeps_insertion_order_and_empty_text():
    tree = ObjectNode(
        children={
            "x": Leaf("1"),
            "y": ObjectNode(children={"b": Leaf(""), "a": Leaf("2")}),
            "z": Leaf("3"),
            "empty": ObjectNode(),
        }
    )
    assert [(str(k), v) for k, v in domain.flatten(tree)] == [
        ("x", "1"),
        ("y.b", ""),
        ("y.a", "2"),
        ("z", "3"),
    ]


def test_round_trip_without_prefix_conflicts():
    tree = domain.from_json(
        {"home": {"title": "Hi", "menu": {"open": "Open", "close": "Close"}}, "footer": "Bye", "z": {"a": ""}}
    )
    flat = domain.flatten(tree)
    again = domain.flatten(domain.unflatten(flat))
    assert set(again) == set(flat)
    assert _keys(again) == _keys(flat)


def test_from_json_stringifies_other_scalars():
    tree = domain.from_json({"n": 3, "f": 1.5, "t": True, "nil": None, "list": ["a", 1]})
    assert dict((str(k), v) for k, v in domain.flatten(tree)) == {
        "n": "3",
        "f": "1.5",
        "t": "true",
        "nil": "",
        "list": '["a",1]',
    }


def test_from_json_rejects_non_object_document():
    with pytest.raises(domain.ResourceFormatError):
        domain.from_json(["not", "an", "object"])


def test_from_json_empty_object_has_no_leaves():
    tree = domain.from_json({"a": {}, "b": {"c": {}}, "d": "x"})
    assert [(str(k), v) for k, v in domain.flatten(tree)] == [("d", "x")]
