"""Tests for the tree-sitter-elixir front end.

Escape and number decoding is tested directly; everything that needs a
parser is skipped when tree-sitter-elixir is not installed.
"""

import pytest


@pytest.fixture
def parse():
    pytest.importorskip("tree_sitter_elixir")
    from exontology.frontend import parse_source

    return parse_source


# =============================================================================
# Escapes and numbers
# =============================================================================


@pytest.mark.parametrize(
    "sequence,expected",
    [
        ("\\n", "\n"),
        ("\\t", "\t"),
        ("\\s", " "),
        ("\\x41", "A"),
        ("\\u{1F600}", "\U0001F600"),
        ("\\u00e9", "é"),
        ('\\"', '"'),
        ("\\\\", "\\"),
    ],
)
def test_unescape(sequence, expected):
    """Escape sequences decode the way the Elixir reader decodes them."""
    from exontology.frontend import unescape

    assert unescape(sequence) == expected


@pytest.mark.parametrize(
    "text,expected",
    [("42", 42), ("1_000", 1000), ("0x1F", 31), ("0o17", 15), ("0b101", 5)],
)
def test_parse_integer(text, expected):
    """Underscores and base prefixes are understood."""
    from exontology.frontend import _parse_integer

    assert _parse_integer(text) == expected


def test_char_value():
    """``?a`` and ``?\\n`` are code points."""
    from exontology.frontend import _char_value

    assert _char_value("?a") == 97
    assert _char_value("?\\n") == 10


def test_file_too_large(tmp_path, monkeypatch):
    """Oversized files are rejected before they are read."""
    from exontology import frontend

    path = tmp_path / "big.ex"
    path.write_text(":ok\n")
    monkeypatch.setattr(frontend, "MAX_FILE_SIZE", 1)
    with pytest.raises(frontend.FileTooLargeError) as exc_info:
        frontend.parse_file(path)
    assert exc_info.value.limit == 1


# =============================================================================
# Terms
# =============================================================================


def test_scalars(parse):
    """Atoms, booleans, numbers and strings."""
    from exontology.nodes import NIL, TRUE, Atom, Float, Integer, Str

    assert parse(":ok") == Atom("ok")
    assert parse("true") == TRUE
    assert parse("nil") == NIL
    assert parse("42") == Integer(42)
    assert parse("1.5") == Float(1.5)
    assert parse("-3") == Integer(-3)
    assert parse('"hello"') == Str("hello")
    assert parse("?a") == Integer(97)


def test_variable_and_alias(parse):
    """Identifiers are variables; dotted aliases keep their segments."""
    from exontology.nodes import Atom, Call, Variable

    assert parse("x") == Variable("x")
    assert parse("Foo.Bar") == Call("__aliases__", (Atom("Foo"), Atom("Bar")))


def test_collections(parse):
    """Lists, tuples and charlists."""
    from exontology.nodes import Atom, Integer, ListNode, TupleNode, Variable

    assert parse("[1, 2]") == ListNode((Integer(1), Integer(2)))
    assert parse("{:ok, x}") == TupleNode((Atom("ok"), Variable("x")))
    assert parse("'ab'") == ListNode((Integer(97), Integer(98)))


def test_keyword_list(parse):
    """``[a: 1]`` is a list of atom-keyed pairs."""
    from exontology.nodes import Atom, Integer, ListNode, TupleNode

    assert parse("[a: 1]") == ListNode((TupleNode((Atom("a"), Integer(1))),))


def test_interpolation(parse):
    """Interpolated strings become ``<<>>`` with marked conversions."""
    from exontology.literal import has_interpolation
    from exontology.nodes import Call, Str

    node = parse('"a#{x}"')
    assert isinstance(node, Call) and node.tag == "<<>>"
    assert node.args[0] == Str("a")
    assert has_interpolation(node.args)


# =============================================================================
# Calls and operators
# =============================================================================


def test_local_and_remote_calls(parse):
    """``foo(1)`` is a Call; ``String.upcase(s)`` is a RemoteCall."""
    from exontology.nodes import Atom, Call, Integer, RemoteCall, Variable

    assert parse("foo(1)") == Call("foo", (Integer(1),))
    remote = parse("String.upcase(s)")
    assert remote == RemoteCall(Call("__aliases__", (Atom("String"),)), "upcase", (Variable("s"),))


def test_anonymous_call(parse):
    """``fun.(x)`` has no function name."""
    from exontology.nodes import RemoteCall, Variable

    assert parse("fun.(x)") == RemoteCall(Variable("fun"), None, (Variable("x"),))


def test_binary_operator(parse):
    """Binary operators are two-argument Calls with a position."""
    from exontology.nodes import Call, Integer

    node = parse("1 + 2")
    assert node == Call("+", (Integer(1), Integer(2)))
    assert (node.meta["line"], node.meta["column"]) == (1, 1)


def test_not_in(parse):
    """``a not in b`` is ``not(a in b)``."""
    from exontology.nodes import Call, Variable

    assert parse("a not in b") == Call("not", (Call("in", (Variable("a"), Variable("b"))),))


def test_keyword_do(parse):
    """``if c, do: 1`` carries its body in a trailing keyword list."""
    from exontology.nodes import Atom, Call, Integer, ListNode, TupleNode, Variable

    assert parse("if c, do: 1") == Call(
        "if", (Variable("c"), ListNode((TupleNode((Atom("do"), Integer(1))),)))
    )


def test_top_level_block(parse):
    """Several expressions form a block; no expressions an empty one."""
    from exontology.nodes import Atom, Call

    assert parse(":a\n:b\n") == Call("__block__", (Atom("a"), Atom("b")))
    assert parse("") == Call("__block__", ())


# =============================================================================
# End to end
# =============================================================================


SOURCE = '''\
defmodule Shop.Cart do
  @moduledoc "Cart."

  def total(items) do
    Enum.sum(items)
  end
end
'''


def test_module_records(parse):
    """A parsed module yields the module, its function and the body's call."""
    from exontology import dispatch

    records = dispatch.extract_source(SOURCE, "cart.ex")
    kinds = [record.kind for record in records]
    assert kinds[:2] == ["module", "function"]
    assert kinds.count("call") == 1

    module = records[0].record
    assert module.name == ["Shop", "Cart"]
    assert module.docstring == "Cart."
    assert module.location.start_line == 1

    function = records[1].record
    assert (function.name, function.arity) == ("total", 1)
    assert function.location.start_line == 4
    assert function.metadata["module"] == ["Shop", "Cart"]

    call = next(record.record for record in records if record.kind == "call")
    assert (call.type, call.module, call.name) == ("remote", ["Enum"], "sum")


def test_extract_file(parse, tmp_path):
    """Files are read, parsed and extracted."""
    from exontology import dispatch

    path = tmp_path / "cart.ex"
    path.write_text(SOURCE)
    results = dispatch.extract_files([path])
    assert [record.kind for record in results[path]][:2] == ["module", "function"]
