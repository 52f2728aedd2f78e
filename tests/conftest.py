"""Pytest configuration and fixtures.

Trees are built directly from the node model, so the extractors are tested
without a parser.
"""

import pytest

from exontology.nodes import Atom, Call, ListNode, TupleNode, Variable


@pytest.fixture
def alias():
    """Build ``Foo.Bar`` as an ``__aliases__`` node: ``alias("Foo", "Bar")``."""

    def build(*parts, line=None):
        meta = {"line": line, "column": 1} if line is not None else {}
        return Call("__aliases__", tuple(Atom(part) for part in parts), meta)

    return build


@pytest.fixture
def var():
    """Build a variable, optionally positioned: ``var("x", line=3)``."""

    def build(name, line=None, column=1):
        meta = {"line": line, "column": column} if line is not None else {}
        return Variable(name, meta=meta)

    return build


@pytest.fixture
def kw():
    """Build a keyword list from pairs, keeping their order: ``kw(("do", body))``."""

    def build(*items):
        return ListNode(tuple(TupleNode((Atom(key), value)) for key, value in items))

    return build


@pytest.fixture
def call():
    """Build a generic call node: ``call("foo", arg1, arg2, line=4)``."""

    def build(tag, *args, line=None, column=1):
        meta = {"line": line, "column": column} if line is not None else {}
        return Call(tag, tuple(args), meta)

    return build
