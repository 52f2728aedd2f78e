"""Tests for struct and exception extraction."""


def _attr(name, *args):
    from exontology.nodes import Call

    return Call("@", (Call(name, tuple(args)),))


def test_defstruct_fields(call):
    """Bare atoms have no default, keyword entries do."""
    from exontology import struct
    from exontology.nodes import Atom, Integer, ListNode, TupleNode

    fields = ListNode((Atom("name"), TupleNode((Atom("age"), Integer(0)))))
    record = struct.extract_or_raise(call("defstruct", fields, line=2))
    assert struct.field_names(record) == ["name", "age"]
    assert struct.default_value(record, "age") == Integer(0)
    assert not struct.has_default(record, "name")
    assert record.metadata == {"field_count": 2, "fields_with_defaults": 1, "line": 2}


def test_struct_from_body(call, alias):
    """Enforced keys and derives come from the surrounding module body."""
    from exontology import struct
    from exontology.nodes import Atom, ListNode

    body = call(
        "__block__",
        _attr("derive", ListNode((alias("Jason", "Encoder"),))),
        _attr("enforce_keys", ListNode((Atom("id"),))),
        call("defstruct", ListNode((Atom("id"), Atom("title")))),
    )
    record = struct.extract_from_body(body).unwrap()
    assert record.enforce_keys == ["id"]
    assert struct.enforced(record, "id")
    assert [f.name for f in struct.required_fields(record)] == ["id"]
    assert struct.has_derives(record)
    assert struct.derived_protocols(record) == [["Jason", "Encoder"]]


def test_no_struct_in_body(call):
    """A body without ``defstruct`` fails with ``no_struct``."""
    from exontology import struct

    result = struct.extract_from_body(call("__block__", call("foo")))
    assert result.error.kind == "no_struct"
    assert not struct.defines_struct(call("foo"))


def test_not_a_struct(call):
    """Other calls fail with ``not_a_struct``."""
    from exontology import struct

    assert struct.extract(call("defexception")).error.kind == "not_a_struct"


def test_exception_with_default_message(call):
    """A string default for ``message`` is the default message."""
    from exontology import struct
    from exontology.nodes import Atom, ListNode, Str, TupleNode

    node = call("defexception", ListNode((TupleNode((Atom("message"), Str("boom"))), Atom("code"))))
    record = struct.extract_exception_or_raise(node)
    assert record.default_message == "boom"
    assert record.has_custom_message is False
    assert record.metadata["has_default_message"] is True
    assert struct.field_names(record) == ["message", "code"]


def test_exception_with_custom_message(call, var, kw):
    """A ``message/1`` definition marks a custom message."""
    from exontology import struct
    from exontology.nodes import Atom, ListNode

    body = call(
        "__block__",
        call("defexception", ListNode((Atom("reason"),))),
        call("def", call("message", var("e")), kw(("do", var("e")))),
    )
    assert struct.defines_exception(body)
    record = struct.extract_exception_or_raise(body)
    assert record.has_custom_message is True
    assert record.default_message is None


def test_no_exception(call):
    """A body without ``defexception`` fails with ``no_exception``."""
    from exontology import struct

    assert struct.extract_exception(call("foo")).error.kind == "no_exception"
