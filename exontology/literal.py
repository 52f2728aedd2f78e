"""
Literal extraction.

Classifies a node into one of twelve literal kinds and builds a ``Literal``
record. Classification order matters because shapes overlap: scalars first,
then tag-inspected forms (charlist sigil, sigil, range, map, bitstring,
interpolated string), then keyword list, plain list and tuple.

Ranges with integer bounds are materialized as Python ``range`` objects with
an inclusive end; any other bounds are kept as an unevaluated
``(start, end, step)`` triple.
"""

from dataclasses import dataclass, field
from typing import Any

from .errors import Result, failure, success
from .helpers import extract_location_if, format_error
from .location import SourceLocation
from .nodes import (
    Atom,
    Call,
    Float,
    Integer,
    ListNode,
    MapNode,
    RemoteCall,
    Str,
    TupleNode,
    atom_value,
    is_call,
    is_keyword_list,
    keyword_items,
)

LITERAL_KINDS = (
    "atom",
    "integer",
    "float",
    "string",
    "list",
    "tuple",
    "map",
    "keyword_list",
    "binary",
    "charlist",
    "sigil",
    "range",
)


@dataclass(frozen=True)
class Literal:
    type: str
    value: Any
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


# =============================================================================
# Classification
# =============================================================================


def is_interpolation(part: Any) -> bool:
    """True for the ``Kernel.to_string(expr) :: binary`` segment of an interpolated string."""
    if not (isinstance(part, Call) and part.tag == "::" and len(part.args) == 2):
        return False
    conversion = part.args[0]
    return (
        isinstance(conversion, RemoteCall)
        and conversion.function == "to_string"
        and isinstance(conversion.receiver, Atom)
        and conversion.receiver.name == "Elixir.Kernel"
        and conversion.meta.get("from_interpolation") is True
    )


def has_interpolation(parts: Any) -> bool:
    return any(is_interpolation(part) for part in parts)


def _is_charlist_sigil(node: Any) -> bool:
    return isinstance(node, Call) and node.tag == "sigil_c"


def _is_sigil(node: Any) -> bool:
    return isinstance(node, Call) and node.tag.startswith("sigil_") and node.tag != "sigil_c"


def _is_range(node: Any) -> bool:
    return is_call(node, "..", 2) or is_call(node, "..//", 3)


def _is_bitstring(node: Any) -> bool:
    return isinstance(node, Call) and node.tag == "<<>>"


def classify(node: Any) -> str | None:
    """Literal kind of a node, or None when it is not a literal."""
    if isinstance(node, Atom):
        return "atom"
    if isinstance(node, Integer):
        return "integer"
    if isinstance(node, Float):
        return "float"
    if isinstance(node, Str):
        return "string"
    if _is_charlist_sigil(node):
        return "charlist"
    if _is_sigil(node):
        return "sigil"
    if _is_range(node):
        return "range"
    if isinstance(node, MapNode):
        return "map"
    if _is_bitstring(node):
        return "string" if has_interpolation(node.args) else "binary"
    if isinstance(node, ListNode):
        if node.elements and is_keyword_list(node):
            return "keyword_list"
        return "list"
    if isinstance(node, TupleNode):
        return "tuple"
    return None


def is_literal(node: Any) -> bool:
    return classify(node) is not None


# =============================================================================
# Extraction
# =============================================================================


def extract(node: Any, include_location: bool = True) -> Result:
    kind = classify(node)
    if kind is None:
        return failure("not_a_literal", format_error("Not a literal", node))
    builder = _BUILDERS[kind]
    return success(builder(node, extract_location_if(node, include_location)))


def extract_or_raise(node: Any, include_location: bool = True) -> Literal:
    return extract(node, include_location).unwrap()


def extract_all(nodes: Any, include_location: bool = True) -> list[Literal]:
    """Literals among the given nodes, skipping everything else."""
    literals = []
    for node in nodes:
        result = extract(node, include_location)
        if result.ok:
            literals.append(result.value)
    return literals


def _atom(node: Atom, location) -> Literal:
    if node.name in ("true", "false"):
        metadata = {"special_atom": True, "atom_kind": "boolean"}
    elif node.name == "nil":
        metadata = {"special_atom": True, "atom_kind": "nil"}
    else:
        metadata = {"special_atom": False}
    return Literal("atom", atom_value(node), location, metadata)


def _integer(node: Integer, location) -> Literal:
    return Literal("integer", node.value, location)


def _float(node: Float, location) -> Literal:
    return Literal("float", node.value, location)


def _string(node: Any, location) -> Literal:
    if isinstance(node, Str):
        return Literal("string", node.value, location, {"interpolated": False})
    parts = list(node.args)
    return Literal(
        "string",
        node,
        location,
        {"interpolated": has_interpolation(parts), "parts": parts},
    )


def _is_cons(element: Any) -> bool:
    return isinstance(element, Call) and element.tag == "|"


def _list(node: ListNode, location) -> Literal:
    has_cons = any(_is_cons(element) for element in node.elements)
    return Literal(
        "list",
        list(node.elements),
        location,
        {"cons_cell": has_cons, "length": None if has_cons else len(node.elements)},
    )


def _tuple(node: TupleNode, location) -> Literal:
    size = len(node.elements)
    return Literal(
        "tuple",
        tuple(node.elements),
        location,
        {"size": size, "ast_form": "implicit" if size == 2 else "explicit"},
    )


def _key_type(key: Any) -> str:
    if isinstance(key, Atom):
        return "atom"
    if isinstance(key, Str):
        return "string"
    return "other"


def _map(node: MapNode, location) -> Literal:
    key_types = []
    for key, _ in node.pairs:
        key_type = _key_type(key)
        if key_type not in key_types:
            key_types.append(key_type)
    metadata = {"pair_count": len(node.pairs), "key_types": key_types}
    if node.update is not None:
        metadata["update"] = node.update
    return Literal("map", list(node.pairs), location, metadata)


def _keyword_list(node: ListNode, location) -> Literal:
    items = keyword_items(node)
    return Literal(
        "keyword_list",
        items,
        location,
        {"keys": [key for key, _ in items], "length": len(items)},
    )


def _binary(node: Call, location) -> Literal:
    segments = list(node.args)
    has_size_specs = any(is_call(segment, "::") for segment in segments)
    return Literal(
        "binary",
        segments,
        location,
        {"segments": segments, "has_size_specs": has_size_specs},
    )


def _modifiers(node: Any) -> str:
    if isinstance(node, ListNode):
        return "".join(
            chr(element.value) for element in node.elements if isinstance(element, Integer)
        )
    if isinstance(node, Str):
        return node.value
    return ""


def _sigil_content(node: Call) -> tuple[Any, str, bool]:
    """(content, modifiers, interpolated) of a sigil node."""
    content_node = node.args[0] if node.args else None
    modifiers = _modifiers(node.args[1]) if len(node.args) > 1 else ""
    if isinstance(content_node, Call) and content_node.tag == "<<>>":
        parts = list(content_node.args)
        if len(parts) == 1 and isinstance(parts[0], Str):
            return parts[0].value, modifiers, False
        if not parts:
            return "", modifiers, False
        return parts, modifiers, True
    return content_node, modifiers, False


def _charlist(node: Call, location) -> Literal:
    content, modifiers, interpolated = _sigil_content(node)
    metadata = {
        "content": content,
        "modifiers": modifiers,
        "delimiter": node.meta.get("delimiter"),
    }
    if interpolated:
        metadata["interpolated"] = True
        value = content
    else:
        value = [ord(char) for char in content] if isinstance(content, str) else content
    return Literal("charlist", value, location, metadata)


def _sigil(node: Call, location) -> Literal:
    sigil_char = node.tag[len("sigil_"):]
    content, modifiers, interpolated = _sigil_content(node)
    metadata = {
        "sigil_char": sigil_char,
        "content": content,
        "modifiers": modifiers,
        "delimiter": node.meta.get("delimiter"),
    }
    if interpolated:
        metadata["interpolated"] = True
    return Literal("sigil", (sigil_char, content, modifiers), location, metadata)


def _bound(node: Any) -> Any:
    return node.value if isinstance(node, Integer) else node


def _range(node: Call, location) -> Literal:
    start, end = node.args[0], node.args[1]
    step = node.args[2] if node.tag == "..//" else None
    metadata = {
        "range_start": _bound(start),
        "range_end": _bound(end),
        "range_step": _bound(step) if step is not None else None,
    }
    integer_bounds = isinstance(start, Integer) and isinstance(end, Integer)
    if integer_bounds and step is None:
        increment = 1 if end.value >= start.value else -1
        value = range(start.value, end.value + increment, increment)
    elif integer_bounds and isinstance(step, Integer) and step.value != 0:
        increment = 1 if step.value > 0 else -1
        value = range(start.value, end.value + increment, step.value)
    else:
        value = (start, end, step)
    return Literal("range", value, location, metadata)


_BUILDERS = {
    "atom": _atom,
    "integer": _integer,
    "float": _float,
    "string": _string,
    "list": _list,
    "tuple": _tuple,
    "map": _map,
    "keyword_list": _keyword_list,
    "binary": _binary,
    "charlist": _charlist,
    "sigil": _sigil,
    "range": _range,
}
