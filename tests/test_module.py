"""Tests for module extraction."""


def _attr(name, *args):
    from exontology.nodes import Call

    return Call("@", (Call(name, tuple(args)),))


def _module(call, kw, name, *statements, line=None):
    body = statements[0] if len(statements) == 1 else call("__block__", *statements)
    return call("defmodule", name, kw(("do", body)), line=line)


def test_module_summary(call, var, kw, alias):
    """Name, docs, directives and definition summaries."""
    from exontology import module
    from exontology.nodes import Atom, ListNode, Str

    node = _module(
        call, kw, alias("MyApp", "Accounts"),
        _attr("moduledoc", Str("Accounts.")),
        call("alias", alias("MyApp", "Repo")),
        call("import", alias("Ecto", "Query"), kw(("only", ListNode((Atom("from"),))))),
        call("require", alias("Logger")),
        call("use", alias("GenServer")),
        _attr("type", call("::", call("t"), call("map"))),
        call("def", call("get", var("id")), kw(("do", var("id")))),
        call("def", call("get", var("other")), kw(("do", var("other")))),
        call("defp", call("check"), kw(("do", Atom("ok")))),
        call("defmacro", call("m", var("x")), kw(("do", var("x")))),
        line=1,
    )
    record = module.extract_or_raise(node)
    assert record.type == "module"
    assert module.module_name_string(record) == "MyApp.Accounts"
    assert record.docstring == "Accounts."
    assert module.has_docs(record)
    assert [a.module for a in record.aliases] == [["MyApp", "Repo"]]
    assert record.imports[0].module == ["Ecto", "Query"]
    assert record.imports[0].only == ListNode((Atom("from"),))
    assert [r.module for r in record.requires] == [["Logger"]]
    assert [u.module for u in record.uses] == [["GenServer"]]
    assert record.uses[0].options == ListNode()
    assert record.functions == [
        {"name": "get", "arity": 1, "visibility": "public"},
        {"name": "check", "arity": 0, "visibility": "private"},
    ]
    assert record.macros == [{"name": "m", "arity": 1, "visibility": "public"}]
    assert record.types == [{"name": "t", "arity": 0, "visibility": "public"}]
    assert record.location.start_line == 1
    assert record.metadata["has_moduledoc"] is True


def test_alias_forms(call, kw, alias):
    """``as:`` and multi-alias directives expand to their full names."""
    from exontology import module
    from exontology.nodes import RemoteCall

    body = call(
        "__block__",
        call("alias", alias("MyApp", "Users", "User"), kw(("as", alias("U")))),
        call("alias", RemoteCall(alias("MyApp"), "{}", (alias("Repo"), alias("Mailer")))),
    )
    aliases = module.extract_aliases(body)
    assert [(a.module, a.as_) for a in aliases] == [
        (["MyApp", "Users", "User"], "U"),
        (["MyApp", "Repo"], None),
        (["MyApp", "Mailer"], None),
    ]


def test_nested_modules(call, kw, alias):
    """Nested modules are listed, not descended into."""
    from exontology import module

    inner = _module(call, kw, alias("Inner"), call("def", call("f")))
    outer = module.extract_or_raise(_module(call, kw, alias("Outer"), inner))
    assert outer.metadata["nested_modules"] == [["Inner"]]
    assert outer.functions == []

    nested = module.extract_or_raise(inner, parent_module=["Outer"])
    assert nested.type == "nested_module"
    assert nested.metadata["parent_module"] == ["Outer"]


def test_hidden_moduledoc(call, kw, alias):
    """``@moduledoc false`` hides the docs."""
    from exontology import module
    from exontology.nodes import Atom

    record = module.extract_or_raise(_module(call, kw, alias("Hidden"), _attr("moduledoc", Atom("false"))))
    assert module.docs_hidden(record)
    assert not module.has_docs(record)


def test_atom_module_name(call, kw):
    """Erlang-style atom names are accepted."""
    from exontology import module
    from exontology.nodes import Atom

    record = module.extract_or_raise(_module(call, kw, Atom("my_mod"), Atom("ok")))
    assert record.name == ["my_mod"]


def test_not_a_module(call, var):
    """Calls other than ``defmodule/2`` are rejected."""
    from exontology import module

    assert module.extract(call("defmodule", var("x"))).error.kind == "not_a_module"
    assert module.module_body(call("foo")) is None
