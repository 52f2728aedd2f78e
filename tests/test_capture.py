"""Tests for capture operator extraction."""


def _ph(n, line=None):
    from exontology.nodes import Call, Integer

    meta = {"line": line, "column": 1} if line is not None else {}
    return Call("&", (Integer(n),), meta)


def test_named_local_capture(call):
    """``&foo/2``"""
    from exontology import capture
    from exontology.nodes import Integer

    record = capture.extract_or_raise(call("&", call("/", call("foo"), Integer(2))))
    assert (record.type, record.function, record.arity) == ("named_local", "foo", 2)


def test_named_remote_capture(call, alias):
    """``&String.upcase/1`` keeps the module as a dotted name."""
    from exontology import capture
    from exontology.nodes import Integer, RemoteCall

    target = RemoteCall(alias("String"), "upcase")
    record = capture.extract_or_raise(call("&", call("/", target, Integer(1))))
    assert (record.type, record.module, record.function, record.arity) == (
        "named_remote", "String", "upcase", 1,
    )
    assert not capture.is_erlang_capture(record)


def test_erlang_capture(call):
    """``&:lists.reverse/1``"""
    from exontology import capture
    from exontology.nodes import Atom, Integer, RemoteCall

    record = capture.extract_or_raise(call("&", call("/", RemoteCall(Atom("lists"), "reverse"), Integer(1))))
    assert record.module == "lists"
    assert capture.is_erlang_capture(record)


def test_shorthand_capture(call):
    """``&(&1 + &2)`` has arity 2."""
    from exontology import capture

    body = call("+", _ph(1), _ph(2))
    record = capture.extract_or_raise(call("&", body))
    assert record.type == "shorthand"
    assert (record.arity, record.placeholders) == (2, [1, 2])
    assert record.expression == body


def test_unrecognized_named_capture(call):
    """A ``/`` capture of something that is not a function name fails."""
    from exontology import capture
    from exontology.nodes import Integer

    result = capture.extract(call("&", call("/", call("foo", Integer(1)), Integer(2))))
    assert result.error.kind == "unrecognized_capture_pattern"


def test_placeholder_gaps(call):
    """``&1`` and ``&3`` leave position 2 as a gap."""
    from exontology import capture

    analysis = capture.analyze_placeholders(call("+", _ph(1), _ph(3)))
    assert analysis.gaps == [2]
    assert analysis.has_gaps
    assert (analysis.highest, analysis.arity) == (3, 3)


def test_placeholder_usage(call):
    """Repeated placeholders are counted with their locations."""
    from exontology import capture

    placeholders = capture.extract_capture_placeholders(call("*", _ph(1, line=4), _ph(1, line=4)))
    assert len(placeholders) == 1
    assert placeholders[0].usage_count == 2
    assert [loc.start_line for loc in placeholders[0].locations] == [4, 4]


def test_nested_capture_placeholders_are_separate(call):
    """Placeholders of an inner capture do not count for the outer one."""
    from exontology import capture

    inner = call("&", call("foo", _ph(2)))
    assert capture.find_placeholders(call("bar", _ph(1), inner)) == [1]


def test_extract_all_finds_each_capture_once(call):
    """Named and shorthand captures are each reported once; placeholders are not captures."""
    from exontology import capture
    from exontology.nodes import Integer

    named = call("&", call("/", call("foo"), Integer(1)))
    shorthand = call("&", call("+", _ph(1), Integer(1)))
    found = capture.extract_all(call("__block__", named, shorthand))
    assert [c.type for c in found] == ["named_local", "shorthand"]


def test_extract_all_nested_shorthand(call, alias):
    """``&Enum.map(&1, &(&1 * 2))`` yields the outer and the inner capture."""
    from exontology import capture
    from exontology.nodes import Integer, RemoteCall

    inner = call("&", call("*", _ph(1), Integer(2)))
    outer = call("&", RemoteCall(alias("Enum"), "map", (_ph(1), inner)))
    found = capture.extract_all(outer)
    assert len(found) == 2
    assert found[0].expression.function == "map"
    assert found[1].expression == call("*", _ph(1), Integer(2))
    assert [c.placeholders for c in found] == [[1], [1]]
