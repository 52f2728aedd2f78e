"""
Shared utilities for the extractors.

Holds the special-forms table, error formatting, body normalization,
definition-head helpers and derive-directive parsing.
"""

import os
from dataclasses import dataclass, field
from typing import Any

from .location import SourceLocation, extract_location
from .nodes import (
    Atom,
    Call,
    ListNode,
    Str,
    TupleNode,
    Variable,
    is_alias,
    is_call,
    keyword_get,
    render,
)

# Recursion cap for bulk extraction; override with EXONTOLOGY_MAX_DEPTH
DEFAULT_MAX_RECURSION_DEPTH = 100
MAX_RECURSION_DEPTH = int(os.environ.get("EXONTOLOGY_MAX_DEPTH", DEFAULT_MAX_RECURSION_DEPTH))

# Rendering caps for error payloads
ERROR_INSPECT_LIMIT = 20
ERROR_PRINTABLE_LIMIT = 100
ERROR_MESSAGE_LIMIT = 1000

SPECIAL_FORMS = frozenset({
    "__block__", "__aliases__", "__MODULE__", "__DIR__", "__ENV__", "__CALLER__",
    "__STACKTRACE__",
    "fn", "do", "else", "catch", "rescue", "after",
    "def", "defp", "defmacro", "defmacrop", "defmodule", "defprotocol", "defimpl",
    "defstruct", "defdelegate", "defguard", "defguardp", "defexception",
    "defoverridable",
    "import", "require", "use", "alias",
    "if", "unless", "case", "cond", "with", "for", "try", "receive", "raise", "throw",
    "quote", "unquote", "unquote_splicing", "super",
    "&", "^", "=", "|>", ".", "|", "::", "<<>>", "{}", "%{}", "%",
})

DEFINITION_TAGS = frozenset({"def", "defp", "defmacro", "defmacrop"})


def is_special_form(name: Any) -> bool:
    return isinstance(name, str) and name in SPECIAL_FORMS


def format_error(message: str, node: Any) -> str:
    """Error message with a truncated rendering of the offending node."""
    rendered = render(node, limit=ERROR_INSPECT_LIMIT, printable_limit=ERROR_PRINTABLE_LIMIT)
    text = f"{message}: {rendered}"
    if len(text) > ERROR_MESSAGE_LIMIT:
        text = text[:ERROR_MESSAGE_LIMIT] + "..."
    return text


def resolve_max_depth(max_depth: int | None) -> int:
    return MAX_RECURSION_DEPTH if max_depth is None else max_depth


def depth_exceeded(depth: int, max_depth: int | None = None) -> bool:
    return depth > resolve_max_depth(max_depth)


# =============================================================================
# Bodies and options
# =============================================================================


def normalize_body(body: Any) -> list:
    """Statement list of a body: block statements, [] for None, else [body]."""
    if isinstance(body, Call) and body.tag == "__block__":
        return list(body.args)
    if body is None:
        return []
    return [body]


def extract_do_body(opts: Any) -> list:
    if not isinstance(opts, ListNode):
        return []
    return normalize_body(keyword_get(opts, "do"))


def attribute_parts(node: Any) -> tuple[str, tuple] | None:
    """(name, args) of a module attribute ``@name args``, or None."""
    if not (isinstance(node, Call) and node.tag == "@" and len(node.args) == 1):
        return None
    inner = node.args[0]
    if isinstance(inner, Call):
        return inner.tag, inner.args
    if isinstance(inner, Variable):
        return inner.name, ()
    return None


def is_attribute(node: Any, name: str | None = None) -> bool:
    parts = attribute_parts(node)
    if parts is None:
        return False
    return name is None or parts[0] == name


def extract_moduledoc(statements: list) -> str | bool | None:
    """First ``@moduledoc`` wins: its string, False for ``@moduledoc false``, else None."""
    for statement in statements:
        parts = attribute_parts(statement)
        if parts is None or parts[0] != "moduledoc" or len(parts[1]) != 1:
            continue
        value = doc_string(parts[1][0])
        if value is not None:
            return value
    return None


def doc_string(node: Any) -> str | bool | None:
    """Text of a doc attribute value: plain string, ``~S`` sigil, or false."""
    if isinstance(node, Str):
        return node.value
    if isinstance(node, Atom) and node.name == "false":
        return False
    if isinstance(node, Call) and node.tag in ("sigil_S", "sigil_s") and node.args:
        content = node.args[0]
        if isinstance(content, Call) and content.tag == "<<>>":
            parts = [part.value for part in content.args if isinstance(part, Str)]
            if len(parts) == len(content.args):
                return "".join(parts)
    if isinstance(node, Call) and node.tag == "<<>>":
        parts = [part.value for part in node.args if isinstance(part, Str)]
        if parts:
            return "".join(parts)
    return None


# =============================================================================
# Module references
# =============================================================================


def module_parts(node: Any) -> list[str] | None:
    """Name segments of ``Foo.Bar`` or a bare module atom; None for anything else."""
    if is_alias(node):
        parts = []
        for part in node.args:
            if isinstance(part, Atom):
                parts.append(part.name)
            elif isinstance(part, Variable):
                parts.append(part.name)
            else:
                parts.append(render(part))
        return parts
    if isinstance(node, Atom):
        name = node.name
        if name.startswith("Elixir."):
            return name[len("Elixir."):].split(".")
        return [name]
    return None


def module_name(node: Any) -> str | None:
    """Dotted module name (``"Foo.Bar"``, ``"lists"``), or None."""
    parts = module_parts(node)
    return ".".join(parts) if parts is not None else None


def extract_location_if(node: Any, include_location: bool = True) -> SourceLocation | None:
    return extract_location(node) if include_location else None


# =============================================================================
# Definition heads
# =============================================================================


def compute_arity(params: Any) -> int:
    if isinstance(params, (list, tuple)):
        return len(params)
    return 0


def extract_parameter_names(params: Any) -> list[str]:
    """Names of simple parameters; anything without a name becomes ``_``."""
    if not isinstance(params, (list, tuple)):
        return []
    names = []
    for param in params:
        if isinstance(param, Variable):
            names.append(param.name)
        elif isinstance(param, Call):
            names.append(param.tag)
        else:
            names.append("_")
    return names


def split_definition_head(head: Any) -> tuple[str, tuple, Any] | None:
    """(name, params, guard) of a definition head; guard heads are checked first.

    ``foo(a) when is_integer(a)`` is a ``when`` node around the call, which
    would otherwise read as a function named ``when`` with two parameters.
    """
    guard = None
    if is_call(head, "when", 2):
        head, guard = head.args
    if isinstance(head, Variable):
        return head.name, (), guard
    if isinstance(head, Call) and head.tag not in ("when", "__aliases__", "__block__"):
        return head.tag, head.args, guard
    return None


def extract_function_signature(node: Any) -> tuple[str, int] | None:
    """(name, arity) of a def/defp/defmacro/defmacrop node, guard heads included."""
    if not (isinstance(node, Call) and node.tag in DEFINITION_TAGS and node.args):
        return None
    head = node.args[0]
    if is_call(head, "when") and head.args:
        head = head.args[0]
    elif is_call(head, "when"):
        return None
    if isinstance(head, Call):
        return head.tag, len(head.args)
    if isinstance(head, Variable):
        return head.name, 0
    return None


def combine_guards(guards: list) -> Any:
    """Fold several guard expressions into one right-nested ``and``."""
    if not guards:
        return None
    if len(guards) == 1:
        return guards[0]
    return Call("and", (guards[0], combine_guards(guards[1:])))


# =============================================================================
# Derive directives
# =============================================================================


@dataclass(frozen=True)
class DeriveInfo:
    """One ``@derive`` directive; protocols are dicts of ``protocol`` and ``options``."""

    protocols: list[dict] = field(default_factory=list)
    location: SourceLocation | None = None


def is_derive_attribute(node: Any) -> bool:
    return is_attribute(node, "derive")


def _derive_protocol(entry: Any) -> dict:
    if is_alias(entry):
        return {"protocol": module_parts(entry), "options": None}
    if isinstance(entry, Atom):
        return {"protocol": entry.name, "options": None}
    if isinstance(entry, TupleNode) and len(entry.elements) == 2:
        target, opts = entry.elements
        if isinstance(opts, ListNode):
            if is_alias(target):
                return {"protocol": module_parts(target), "options": opts}
            if isinstance(target, Atom):
                return {"protocol": target.name, "options": opts}
    return {"protocol": render(entry), "options": None}


def extract_derives(body: Any) -> list[DeriveInfo]:
    derives = []
    for statement in normalize_body(body):
        parts = attribute_parts(statement)
        if parts is None or parts[0] != "derive" or len(parts[1]) != 1:
            continue
        protocols = parts[1][0]
        entries = protocols.elements if isinstance(protocols, ListNode) else (protocols,)
        derives.append(
            DeriveInfo(
                protocols=[_derive_protocol(entry) for entry in entries],
                location=extract_location(statement),
            )
        )
    return derives
