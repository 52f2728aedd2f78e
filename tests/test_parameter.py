"""Tests for function parameter extraction."""

import pytest


def test_simple_parameter(var):
    """A bare variable is a simple parameter."""
    from exontology import parameter

    record = parameter.extract_or_raise(var("user"), position=2)
    assert (record.position, record.name, record.type) == (2, "user", "simple")
    assert record.metadata["is_ignored"] is False
    assert parameter.param_id(record) == "user@2"


def test_ignored_parameter(var):
    """Underscore-prefixed names are ignored parameters."""
    from exontology import parameter

    assert parameter.extract_or_raise(var("_opts")).metadata["is_ignored"] is True
    assert parameter.is_ignored("_")
    assert not parameter.is_ignored("opts")


def test_default_parameter(var):
    """``opts \\\\ []`` carries its default value."""
    from exontology import parameter
    from exontology.nodes import Call, ListNode

    record = parameter.extract_or_raise(Call("\\\\", (var("opts"), ListNode())))
    assert record.type == "default"
    assert record.name == "opts"
    assert record.default_value == ListNode()
    assert parameter.has_default(record)


def test_pin_parameter(var):
    """``^expected`` is a pin parameter named after the pinned variable."""
    from exontology import parameter
    from exontology.nodes import Call

    record = parameter.extract_or_raise(Call("^", (var("expected"),)))
    assert (record.type, record.name) == ("pin", "expected")


@pytest.mark.parametrize(
    "build,expected",
    [
        (lambda n: n.TupleNode((n.Atom("ok"), n.Variable("v"))), "tagged_tuple"),
        (lambda n: n.TupleNode((n.Variable("a"), n.Variable("b"), n.Variable("c"))), "tuple"),
        (lambda n: n.MapNode(), "map"),
        (lambda n: n.ListNode(), "list"),
        (lambda n: n.ListNode((n.TupleNode((n.Atom("k"), n.Variable("v"))),)), "keyword"),
        (lambda n: n.Call("|", (n.Variable("h"), n.Variable("t"))), "cons"),
        (lambda n: n.Call("<<>>", ()), "binary"),
        (lambda n: n.Call("=", (n.MapNode(), n.Variable("m"))), "match"),
        (lambda n: n.Integer(0), "literal"),
    ],
)
def test_pattern_parameter_types(build, expected):
    """Destructuring parameters are sub-classified by shape."""
    from exontology import nodes, parameter

    record = parameter.extract_or_raise(build(nodes))
    assert record.type == "pattern"
    assert record.metadata["pattern_type"] == expected


def test_extract_all_keeps_positions_and_skips_failures(var, call):
    """Unclassifiable parameters are skipped without shifting positions."""
    from exontology import parameter

    records = parameter.extract_all([var("a"), call("weird"), var("b")])
    assert [(record.name, record.position) for record in records] == [("a", 0), ("b", 2)]
    assert parameter.extract_all(None) == []
