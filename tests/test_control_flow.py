"""Tests for try/raise/throw extraction and the unified control flow entry point."""

import pytest


def _clause(*heads, body):
    from exontology.nodes import Call, ListNode

    return Call("->", (ListNode(heads), body))


# =============================================================================
# try
# =============================================================================


def test_try_sections(call, var, kw, alias):
    """Rescue, catch, else and after sections are decomposed."""
    from exontology import control_flow
    from exontology.nodes import Atom, ListNode

    node = call(
        "try",
        kw(
            ("do", call("work")),
            ("rescue", ListNode((
                _clause(call("in", var("e"), ListNode((alias("ArgumentError"), alias("KeyError")))), body=var("e")),
                _clause(alias("RuntimeError"), body=Atom("runtime")),
            ))),
            ("catch", ListNode((
                _clause(var("value"), body=var("value")),
                _clause(Atom("exit"), var("reason"), body=var("reason")),
            ))),
            ("else", ListNode((_clause(var("result"), body=var("result")),))),
            ("after", call("cleanup")),
        ),
    )
    record = control_flow.extract_try_or_raise(node)
    assert record.body == call("work")
    first, second = record.rescue_clauses
    assert (first.exceptions, first.variable) == (["ArgumentError", "KeyError"], "e")
    assert (second.exceptions, second.variable) == (["RuntimeError"], None)
    assert [(c.kind, c.pattern) for c in record.catch_clauses] == [
        ("throw", var("value")),
        ("exit", var("reason")),
    ]
    assert len(record.else_clauses) == 1
    assert record.after_body == call("cleanup")
    assert record.metadata["has_rescue"] and record.metadata["has_catch"]
    assert record.metadata["has_after"] and record.metadata["has_else"]


def test_rescue_any_exception(call, var, kw):
    """``rescue e ->`` binds the variable without naming exceptions."""
    from exontology import control_flow
    from exontology.nodes import ListNode

    node = call("try", kw(("do", call("work")), ("rescue", ListNode((_clause(var("e"), body=var("e")),)))))
    clause = control_flow.extract_try_or_raise(node).rescue_clauses[0]
    assert (clause.exceptions, clause.variable) == ([], "e")


# =============================================================================
# raise / throw
# =============================================================================


def test_raise_message(call):
    """A string argument is a message raise."""
    from exontology import control_flow
    from exontology.nodes import Str

    record = control_flow.extract_raise(call("raise", Str("boom"))).unwrap()
    assert (record.raise_type, record.message) == ("message", "boom")


def test_raise_interpolated_message(call, var):
    """An interpolated string is still a message."""
    from exontology import control_flow
    from exontology.nodes import Atom, RemoteCall, Str

    to_string = RemoteCall(Atom("Elixir.Kernel"), "to_string", (var("x"),), {"from_interpolation": True})
    interpolated = call("<<>>", Str("bad: "), call("::", to_string, var("binary")))
    record = control_flow.extract_raise(call("raise", interpolated)).unwrap()
    assert record.raise_type == "message"
    assert record.message == interpolated


def test_raise_exception_module(call, kw, alias):
    """A module argument with options is an exception raise."""
    from exontology import control_flow
    from exontology.nodes import Str

    opts = kw(("message", Str("nope")))
    record = control_flow.extract_raise(call("raise", alias("ArgumentError"), opts)).unwrap()
    assert record.raise_type == "exception"
    assert record.exception_module == ["ArgumentError"]
    assert record.options == opts
    assert record.metadata["has_options"] is True


def test_reraise_variable(call, var):
    """Raising a bound exception value is a reraise."""
    from exontology import control_flow

    record = control_flow.extract_raise(call("raise", var("e"))).unwrap()
    assert (record.raise_type, record.exception) == ("reraise", var("e"))


def test_throw(call, var):
    """``throw value`` keeps the thrown value."""
    from exontology import control_flow

    assert control_flow.extract_throw(call("throw", var("v"))).unwrap().value == var("v")


# =============================================================================
# Unified entry point
# =============================================================================


@pytest.mark.parametrize("tag", ["if", "unless"])
def test_unified_entry_delegates(tag, call, var, kw):
    """Conditionals are handed to the conditional extractor."""
    from exontology import control_flow
    from exontology.conditional import Conditional
    from exontology.nodes import Atom

    record = control_flow.extract_or_raise(call(tag, var("x"), kw(("do", Atom("ok")))))
    assert isinstance(record, Conditional)
    assert record.type == tag


def test_not_control_flow(call):
    """Other calls fail with ``not_control_flow``."""
    from exontology import control_flow

    assert control_flow.extract(call("foo")).error.kind == "not_control_flow"


def test_extract_all_outer_first(call, var, kw, alias):
    """Constructs nested in a try body are found after the try."""
    from exontology import control_flow
    from exontology.nodes import Str

    inner = call("if", var("x"), kw(("do", call("raise", Str("boom")))))
    node = call("try", kw(("do", inner), ("after", call("throw", var("y")))))
    found = control_flow.extract_all(node)
    assert [type(record).__name__ for record in found] == [
        "TryExpression", "Conditional", "RaiseExpression", "ThrowExpression",
    ]
    assert len(control_flow.extract_try_expressions(node)) == 1


# =============================================================================
# Depth limit
# =============================================================================


def _buried(node, levels):
    from exontology.nodes import Call

    for _ in range(levels):
        node = Call("wrap", (node,))
    return node


def _constructs(call, var, kw):
    from exontology.nodes import Atom, ListNode

    return {
        "conditional": call("if", var("x"), kw(("do", Atom("yes")))),
        "case": call("case", var("x"), kw(("do", ListNode((_clause(var("v"), body=var("v")),))))),
        "try": call("try", kw(("do", Atom("ok")), ("after", Atom("done")))),
        "control_flow": call("throw", var("x")),
    }


def _bulk_extractors():
    from exontology import case_with, conditional, control_flow

    return {
        "conditional": conditional.extract_conditionals,
        "case": case_with.extract_case_expressions,
        "try": control_flow.extract_try_expressions,
        "control_flow": control_flow.extract_all,
    }


@pytest.mark.parametrize("kind", ["conditional", "case", "try", "control_flow"])
def test_bulk_extraction_past_default_depth_is_empty(kind, call, var, kw):
    """A construct buried deeper than the default limit of 100 yields nothing."""
    from exontology.helpers import MAX_RECURSION_DEPTH

    extract = _bulk_extractors()[kind]
    target = _constructs(call, var, kw)[kind]
    assert len(extract(_buried(target, 50))) == 1
    assert extract(_buried(target, MAX_RECURSION_DEPTH + 50)) == []


def test_deep_if_chain_stops_at_default_depth(call, var, kw):
    """Nested ``if`` expressions are found down to the limit and no further."""
    from exontology import conditional
    from exontology.helpers import MAX_RECURSION_DEPTH
    from exontology.nodes import Atom

    node = Atom("bottom")
    for _ in range(MAX_RECURSION_DEPTH + 50):
        node = call("if", var("x"), kw(("do", Atom("yes")), ("else", node)))
    assert len(conditional.extract_conditionals(node)) == MAX_RECURSION_DEPTH + 1
