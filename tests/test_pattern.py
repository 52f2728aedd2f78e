"""Tests for pattern classification and binding collection."""

import pytest


# =============================================================================
# Classification
# =============================================================================


@pytest.mark.parametrize(
    "build,expected",
    [
        (lambda n: n.Variable("_"), "wildcard"),
        (lambda n: n.Variable("x"), "variable"),
        (lambda n: n.Call("^", (n.Variable("x"),)), "pin"),
        (lambda n: n.Atom("ok"), "literal"),
        (lambda n: n.TupleNode((n.Atom("ok"), n.Variable("x"))), "tuple"),
        (lambda n: n.ListNode((n.Variable("h"),)), "list"),
        (lambda n: n.MapNode(((n.Atom("k"), n.Variable("v")),)), "map"),
        (lambda n: n.Call("<<>>", (n.Variable("b"),)), "binary"),
        (lambda n: n.Call("=", (n.Variable("a"), n.Variable("b"))), "as"),
        (lambda n: n.Call("when", (n.Variable("a"), n.Atom("true"))), "guard"),
    ],
)
def test_classify(build, expected):
    """Each pattern shape gets its kind."""
    from exontology import nodes, pattern

    assert pattern.classify(build(nodes)) == expected


def test_struct_pattern(alias, var):
    """Struct patterns name the struct and bind field values only."""
    from exontology import pattern
    from exontology.nodes import Atom, Call, MapNode

    node = Call("%", (alias("User"), MapNode(((Atom("name"), var("name")),))))
    record = pattern.extract_or_raise(node)
    assert record.type == "struct"
    assert record.metadata["struct_name"] == ["User"]
    assert record.metadata["is_any_struct"] is False
    assert record.bindings == ["name"]


def test_any_struct_pattern(var):
    """``%_{}`` matches any struct."""
    from exontology import pattern
    from exontology.nodes import Call, MapNode

    record = pattern.extract_or_raise(Call("%", (var("_"), MapNode())))
    assert record.metadata["struct_name"] == "any"
    assert record.metadata["is_any_struct"] is True


def test_call_is_not_a_pattern(call):
    """Function calls are not patterns."""
    from exontology import pattern

    result = pattern.extract(call("foo"))
    assert result.error.kind == "not_a_pattern"


# =============================================================================
# Bindings
# =============================================================================


def test_bindings_skip_wildcards_and_pins(var):
    """Wildcards and pinned variables bind nothing."""
    from exontology.nodes import Call, TupleNode
    from exontology.pattern import collect_bindings

    node = TupleNode((var("a"), var("_"), Call("^", (var("b"),)), var("c")))
    assert collect_bindings(node) == ["a", "c"]


def test_bindings_deduplicate_in_order(var):
    """A variable repeated across patterns is reported once."""
    from exontology.nodes import ListNode
    from exontology.pattern import collect_bindings

    assert collect_bindings([var("x"), ListNode((var("y"), var("x")))]) == ["x", "y"]


def test_map_keys_are_not_bindings(var):
    """Only map values bind."""
    from exontology.nodes import MapNode
    from exontology.pattern import collect_bindings

    assert collect_bindings(MapNode(((var("key"), var("value")),))) == ["value"]


def test_binary_segments_bind_left_of_specifier(var):
    """``<<size::8, rest::binary>>`` binds size and rest, not the specifiers."""
    from exontology.nodes import Call, Integer
    from exontology.pattern import collect_bindings

    node = Call("<<>>", (
        Call("::", (var("size"), Integer(8))),
        Call("::", (var("rest"), var("binary"))),
    ))
    assert collect_bindings(node) == ["size", "rest"]


def test_as_pattern_binds_both_sides(var):
    """``%{} = whole`` binds the names on both sides of ``=``."""
    from exontology import pattern
    from exontology.nodes import Atom, Call, MapNode

    node = Call("=", (MapNode(((Atom("id"), var("id")),)), var("whole")))
    assert pattern.extract_or_raise(node).bindings == ["id", "whole"]


def test_cons_bindings(var):
    """Head and tail of ``[h | t]`` are both bound."""
    from exontology.nodes import Call, ListNode
    from exontology.pattern import collect_bindings

    assert collect_bindings(ListNode((Call("|", (var("h"), var("t"))),))) == ["h", "t"]
