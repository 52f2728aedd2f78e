"""Tests for guard decomposition and classification."""


def _is_integer(var, name):
    from exontology.nodes import Call

    return Call("is_integer", (var(name),))


# =============================================================================
# Combinators
# =============================================================================


def test_single_guard(var):
    """A lone check has combinator ``none``."""
    from exontology import guard

    record = guard.extract_or_raise(_is_integer(var, "x"))
    assert record.combinator == "none"
    assert record.expressions == [_is_integer(var, "x")]
    assert record.guard_functions == ["is_integer"]
    assert guard.has_type_check(record)


def test_and_guard_flattens(var):
    """Nested ``and`` chains flatten to their leaves in order."""
    from exontology import guard
    from exontology.nodes import Call, Integer

    expression = Call("and", (
        _is_integer(var, "x"),
        Call("and", (Call(">", (var("x"), Integer(0))), Call("<", (var("x"), Integer(10))))),
    ))
    record = guard.extract_or_raise(expression)
    assert record.combinator == "and"
    assert guard.expression_count(record) == 3
    assert guard.has_comparison(record)
    assert record.guard_functions == ["<", ">", "is_integer"]


def test_or_guard(var):
    """``or`` chains report ``or``."""
    from exontology import guard
    from exontology.nodes import Call

    record = guard.extract_or_raise(
        Call("or", (_is_integer(var, "x"), Call("is_float", (var("x"),))))
    )
    assert record.combinator == "or"
    assert guard.has_or(record) and not guard.has_and(record)


def test_mixed_guard(var):
    """``and`` over an ``or`` is mixed."""
    from exontology import guard
    from exontology.nodes import Call

    expression = Call("and", (
        _is_integer(var, "x"),
        Call("or", (Call("is_atom", (var("y"),)), Call("is_nil", (var("y"),)))),
    ))
    record = guard.extract_or_raise(expression)
    assert record.combinator == "mixed"
    assert guard.has_and(record) and guard.has_or(record)


# =============================================================================
# Failures and clauses
# =============================================================================


def test_nil_and_non_calls_fail(var):
    """Guards must be call expressions."""
    from exontology import guard
    from exontology.nodes import NIL

    assert guard.extract(NIL).error.kind == "not_a_guard"
    assert guard.extract(None).error.kind == "not_a_guard"
    assert guard.extract(var("x")).error.kind == "not_a_guard"


def test_extract_from_clause(var):
    """Clause records without a guard yield None."""
    from exontology import guard
    from exontology.case_with import CaseClause

    unguarded = CaseClause(index=0, pattern=var("x"), guard=None, body=var("x"))
    assert guard.extract_from_clause(unguarded).value is None
    guarded = CaseClause(index=0, pattern=var("x"), guard=_is_integer(var, "x"), body=var("x"))
    assert guard.extract_from_clause(guarded).value.combinator == "none"
    assert guard.extract_from_clause(object()).error.kind == "invalid_clause"
