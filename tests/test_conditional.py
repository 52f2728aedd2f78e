"""Tests for if/unless/cond extraction."""


def _clause(head, body):
    from exontology.nodes import Call, ListNode

    return Call("->", (ListNode((head,)), body))


def test_if_without_else(call, var, kw):
    """``if`` has a single then branch unless ``else`` is given."""
    from exontology import conditional
    from exontology.nodes import Atom

    record = conditional.extract_conditional_or_raise(call("if", var("ok?"), kw(("do", Atom("yes")))))
    assert record.type == "if"
    assert record.condition == var("ok?")
    assert [b.type for b in record.branches] == ["then"]
    assert record.metadata == {"has_else": False, "branch_count": 1}


def test_if_with_else(call, var, kw):
    """Both branches are kept in order."""
    from exontology import conditional
    from exontology.nodes import Atom

    node = call("if", var("x"), kw(("do", Atom("a")), ("else", Atom("b"))))
    record = conditional.extract_if(node).unwrap()
    assert [(b.type, b.body) for b in record.branches] == [("then", Atom("a")), ("else", Atom("b"))]
    assert record.metadata["has_else"] is True


def test_unless_keeps_condition(call, var, kw):
    """The ``unless`` condition is not negated; its metadata says so."""
    from exontology import conditional
    from exontology.nodes import Atom

    record = conditional.extract_unless(call("unless", var("x"), kw(("do", Atom("a"))))).unwrap()
    assert record.condition == var("x")
    assert record.metadata["semantics"] == "negated_condition"


def test_cond_clauses(call, var, kw):
    """``true ->`` is the catch-all clause."""
    from exontology import conditional
    from exontology.nodes import TRUE, Atom, ListNode

    clauses = ListNode((
        _clause(call(">", var("x"), var("y")), Atom("gt")),
        _clause(TRUE, Atom("other")),
    ))
    record = conditional.extract_cond(call("cond", kw(("do", clauses)))).unwrap()
    assert [c.is_catch_all for c in record.clauses] == [False, True]
    assert record.metadata == {"clause_count": 2, "has_catch_all": True, "catch_all_count": 1}


def test_malformed_cond_clause_keeps_position(call, var, kw):
    """A clause that is not ``cond -> body`` is replaced in place."""
    from exontology import conditional
    from exontology.clause import is_malformed
    from exontology.nodes import TRUE, Atom, ListNode

    clauses = ListNode((var("oops"), _clause(TRUE, Atom("ok"))))
    record = conditional.extract_cond(call("cond", kw(("do", clauses)))).unwrap()
    assert is_malformed(record.clauses[0])
    assert record.clauses[0].index == 0
    assert record.clauses[1].index == 1


def test_not_a_conditional(call, var):
    """Anything else fails with a kind per construct."""
    from exontology import conditional

    assert conditional.extract_conditional(call("foo")).error.kind == "not_a_conditional"
    assert conditional.extract_if(call("unless", var("x"))).error.kind == "not_an_if"


def test_nested_conditionals(call, var, kw):
    """Bulk extraction finds inner conditionals in branches, outer first."""
    from exontology import conditional
    from exontology.nodes import Atom

    inner = call("unless", var("b"), kw(("do", Atom("x"))))
    outer = call("if", var("a"), kw(("do", inner), ("else", Atom("y"))))
    found = conditional.extract_conditionals(call("__block__", outer, Atom("z")))
    assert [c.type for c in found] == ["if", "unless"]
