"""Tests for case/with/receive extraction."""


def _clause(head, body):
    from exontology.nodes import Call, ListNode

    return Call("->", (ListNode((head,)), body))


# =============================================================================
# case
# =============================================================================


def test_case_clauses(call, var, kw):
    """Patterns, guards and bodies are split per clause."""
    from exontology import case_with
    from exontology.nodes import Atom, ListNode, TupleNode

    ok = TupleNode((Atom("ok"), var("v")))
    guarded = call("when", var("n"), call("is_integer", var("n")))
    node = call("case", var("x"), kw(("do", ListNode((_clause(ok, var("v")), _clause(guarded, var("n")))))))
    record = case_with.extract_case_or_raise(node)
    assert record.subject == var("x")
    first, second = record.clauses
    assert (first.pattern, first.has_guard) == (ok, False)
    assert (second.pattern, second.guard) == (var("n"), call("is_integer", var("n")))
    assert record.metadata == {"clause_count": 2, "has_guards": True}


def test_case_pattern_records(call, var, kw):
    """``include_patterns`` attaches a pattern record to each clause."""
    from exontology import case_with
    from exontology.nodes import Atom, ListNode, TupleNode

    node = call("case", var("x"), kw(("do", ListNode((_clause(TupleNode((Atom("ok"), var("v"))), Atom("y")),)))))
    record = case_with.extract_case_or_raise(node, include_patterns=True)
    assert record.clauses[0].pattern_record.type == "tuple"


def test_malformed_case_clause(call, var, kw):
    """A malformed clause becomes a placeholder and its sibling survives."""
    from exontology import case_with
    from exontology.clause import is_malformed
    from exontology.nodes import Atom, ListNode

    node = call("case", var("x"), kw(("do", ListNode((Atom("junk"), _clause(var("_"), Atom("ok")))))))
    record = case_with.extract_case_or_raise(node)
    assert len(record.clauses) == 2
    assert is_malformed(record.clauses[0])
    assert record.clauses[1].body == Atom("ok")


def test_not_a_case(call):
    """A call without clauses is not a case."""
    from exontology import case_with

    assert case_with.extract_case(call("case")).error.kind == "not_a_case"


# =============================================================================
# with
# =============================================================================


def test_with_clauses_and_else(call, var, kw):
    """``<-`` and ``=`` clauses are typed; ``else`` clauses are case clauses."""
    from exontology import case_with
    from exontology.nodes import Atom, ListNode, TupleNode

    node = call(
        "with",
        call("<-", TupleNode((Atom("ok"), var("a"))), call("fetch")),
        call("=", var("b"), call("compute", var("a"))),
        kw(
            ("do", var("b")),
            ("else", ListNode((_clause(var("error"), var("error")),))),
        ),
    )
    record = case_with.extract_with_or_raise(node)
    assert [c.type for c in record.clauses] == ["match", "bare_match"]
    assert record.clauses[0].expression == call("fetch")
    assert record.body == var("b")
    assert record.has_else is True
    assert len(record.else_clauses) == 1
    assert record.metadata["has_bare_match"] is True
    assert record.metadata["options"] == []


def test_with_without_else(call, var, kw):
    """No ``else`` means no else clauses."""
    from exontology import case_with

    node = call("with", call("<-", var("a"), call("f")), kw(("do", var("a"))))
    record = case_with.extract_with_or_raise(node)
    assert record.has_else is False
    assert record.else_clauses == []


# =============================================================================
# receive
# =============================================================================


def test_receive_with_after(call, var, kw):
    """An ``after 0`` clause makes the receive non-blocking."""
    from exontology import case_with
    from exontology.nodes import Atom, Integer, ListNode

    node = call(
        "receive",
        kw(
            ("do", ListNode((_clause(Atom("ping"), Atom("pong")),))),
            ("after", ListNode((_clause(Integer(0), Atom("timeout")),))),
        ),
    )
    record = case_with.extract_receive_or_raise(node)
    assert record.has_after
    assert record.after_clause.is_immediate
    assert record.metadata == {"clause_count": 1, "is_blocking": False, "has_immediate_timeout": True}


def test_receive_blocking(call, kw):
    """Without ``after`` the receive blocks."""
    from exontology import case_with
    from exontology.nodes import Atom, ListNode

    node = call("receive", kw(("do", ListNode((_clause(Atom("ping"), Atom("pong")),)))))
    record = case_with.extract_receive_or_raise(node)
    assert record.after_clause is None
    assert record.metadata["is_blocking"] is True


def test_bulk_extraction_finds_nested(call, var, kw):
    """A case nested in a with body is found by the case scan."""
    from exontology import case_with
    from exontology.nodes import Atom, ListNode

    inner = call("case", var("a"), kw(("do", ListNode((_clause(var("_"), Atom("ok")),)))))
    outer = call("with", call("<-", var("a"), call("f")), kw(("do", inner)))
    assert [c.subject for c in case_with.extract_case_expressions(outer)] == [var("a")]
    assert len(case_with.extract_with_expressions(outer)) == 1
