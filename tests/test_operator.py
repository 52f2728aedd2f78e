"""Tests for operator classification and extraction."""

import pytest


@pytest.mark.parametrize(
    "symbol,category",
    [
        ("+", "arithmetic"),
        ("===", "comparison"),
        ("&&", "logical"),
        ("|>", "pipe"),
        ("=", "match"),
        ("<>", "string_concat"),
        ("++", "list"),
        ("in", "in"),
    ],
)
def test_binary_categories(symbol, category, var):
    """Binary operators are classified by symbol."""
    from exontology import operator
    from exontology.nodes import Call

    assert operator.classify(Call(symbol, (var("a"), var("b")))) == category


def test_binary_operator_record(var):
    """Binary records carry left and right operands."""
    from exontology import operator
    from exontology.nodes import Call

    record = operator.extract_or_raise(Call("||", (var("a"), var("b"))))
    assert (record.operator_class, record.arity) == ("binary", 2)
    assert record.operands == {"left": var("a"), "right": var("b")}
    assert record.metadata == {"symbol_string": "||", "is_shortcircuit": True, "strict_boolean": False}


def test_unary_operators(var):
    """Only ``-``, ``not``, ``!`` and ``&`` have a unary form."""
    from exontology import operator
    from exontology.nodes import Call

    negation = operator.extract_or_raise(Call("not", (var("a"),)))
    assert negation.operator_class == "unary"
    assert negation.metadata["strict_boolean"] is True
    assert operator.classify(Call("+", (var("a"),))) is None


def test_capture_operator_metadata(var):
    """Capture operators note their capture type."""
    from exontology import operator
    from exontology.nodes import Call

    record = operator.extract_or_raise(Call("&", (var("f"),)))
    assert record.metadata["capture_type"] == "function_capture"


def test_non_operator_fails(call):
    """Ordinary calls are not operators."""
    from exontology import operator

    assert operator.extract(call("foo", call("bar"))).error.kind == "not_an_operator"


def test_extract_all_outer_before_inner(var):
    """Nested operators are found in pre-order."""
    from exontology import operator
    from exontology.nodes import Call, Integer

    tree = Call("=", (var("x"), Call("+", (Integer(1), Call("*", (Integer(2), Integer(3)))))))
    assert [record.symbol for record in operator.extract_all(tree)] == ["=", "+", "*"]
