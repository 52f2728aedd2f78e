"""
Pattern extraction and variable binding collection.

Classification order (shapes overlap, so order is significant):

    wildcard -> pin -> guard -> as -> struct -> map -> binary
    -> variable -> literal -> tuple -> list

``collect_bindings`` is the one binding-collection algorithm shared by the
parameter and anonymous-function extractors.
"""

from dataclasses import dataclass, field
from typing import Any

from .errors import Result, failure, success
from .helpers import SPECIAL_FORMS, extract_location_if, format_error, module_parts
from .location import SourceLocation
from .nodes import (
    SCALAR_TYPES,
    Atom,
    Call,
    Float,
    Integer,
    ListNode,
    MapNode,
    TupleNode,
    Variable,
    is_alias,
    is_call,
)

PATTERN_KINDS = (
    "variable",
    "wildcard",
    "pin",
    "literal",
    "tuple",
    "list",
    "map",
    "struct",
    "binary",
    "as",
    "guard",
)

# Tags that are pattern operators rather than variable names
NON_VARIABLE_NAMES = frozenset({"^", "%{}", "%", "<<>>", "{}", "=", "when", "|", "::"})

# A bare 2-tuple whose first element is one of these atoms reads as a quoted
# node rather than tuple data; kept from the quoted-form grammar.
COLLIDING_TUPLE_TAGS = frozenset(
    {"%", "%{}", "<<>>", "^", "=", "when", "|", "::", "__aliases__"}
)


@dataclass(frozen=True)
class Pattern:
    type: str
    expression: Any
    bindings: list[str] = field(default_factory=list)
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


# =============================================================================
# Predicates
# =============================================================================


def is_wildcard(node: Any) -> bool:
    return isinstance(node, Variable) and node.name == "_"


def is_pin(node: Any) -> bool:
    return is_call(node, "^", 1) and isinstance(node.args[0], Variable)


def is_variable(node: Any) -> bool:
    return (
        isinstance(node, Variable)
        and node.name not in NON_VARIABLE_NAMES
        and node.name not in SPECIAL_FORMS
    )


def _is_struct(node: Any) -> bool:
    return is_call(node, "%", 2) and isinstance(node.args[1], MapNode)


def _is_tuple(node: Any) -> bool:
    if not isinstance(node, TupleNode):
        return False
    if len(node.elements) == 2:
        first = node.elements[0]
        return not (isinstance(first, Atom) and first.name in COLLIDING_TUPLE_TAGS)
    return True


def classify(node: Any) -> str | None:
    """Pattern kind of a node, or None."""
    if is_wildcard(node):
        return "wildcard"
    if is_pin(node):
        return "pin"
    if is_call(node, "when", 2):
        return "guard"
    if is_call(node, "=", 2):
        return "as"
    if _is_struct(node):
        return "struct"
    if isinstance(node, MapNode):
        return "map"
    if is_call(node, "<<>>"):
        return "binary"
    if is_variable(node):
        return "variable"
    if isinstance(node, SCALAR_TYPES):
        return "literal"
    if _is_tuple(node):
        return "tuple"
    if isinstance(node, ListNode):
        return "list"
    return None


def is_pattern(node: Any) -> bool:
    return classify(node) is not None


# =============================================================================
# Binding collection
# =============================================================================


def _bindings_of(node: Any) -> list[str]:
    if is_wildcard(node) or is_pin(node):
        return []
    if isinstance(node, Variable):
        return [node.name] if is_variable(node) else []
    if isinstance(node, (TupleNode, ListNode)):
        return collect_bindings(node.elements)
    if _is_struct(node):
        return _pair_bindings(node.args[1])
    if isinstance(node, MapNode):
        return _pair_bindings(node)
    if is_call(node, "<<>>"):
        return _binary_bindings(node.args)
    if is_call(node, "=", 2):
        return collect_bindings([node.args[0]]) + collect_bindings([node.args[1]])
    if is_call(node, "when", 2):
        return collect_bindings([node.args[0]])
    if is_call(node, "|", 2):
        return collect_bindings([node.args[0]]) + collect_bindings([node.args[1]])
    return []


def _unique(names: list[str]) -> list[str]:
    seen = set()
    ordered = []
    for name in names:
        if name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


def _pair_bindings(node: MapNode) -> list[str]:
    # Keys are never binding sites
    names = []
    for _, value in node.pairs:
        names.extend(collect_bindings([value]))
    return _unique(names)


def _binary_bindings(segments) -> list[str]:
    names = []
    for segment in segments:
        if is_call(segment, "::", 2):
            names.extend(collect_bindings([segment.args[0]]))
        else:
            names.extend(collect_bindings([segment]))
    return _unique(names)


def collect_bindings(patterns: Any) -> list[str]:
    """Variables bound by the given pattern(s), deduplicated in first-occurrence order.

    Wildcards and pinned variables bind nothing; map and struct keys are not
    binding sites; bitstring segments bind only on the left of ``::``.
    """
    if not isinstance(patterns, (list, tuple)):
        patterns = [patterns]
    names = []
    for pattern in patterns:
        names.extend(_bindings_of(pattern))
    return _unique(names)


# =============================================================================
# Extraction
# =============================================================================


def extract(node: Any, include_location: bool = True) -> Result:
    kind = classify(node)
    if kind is None:
        return failure("not_a_pattern", format_error("Not a pattern", node))
    location = extract_location_if(node, include_location)
    return success(_BUILDERS[kind](node, location))


def extract_or_raise(node: Any, include_location: bool = True) -> Pattern:
    return extract(node, include_location).unwrap()


def _variable(node: Variable, location) -> Pattern:
    return Pattern(
        "variable",
        node,
        [node.name],
        location,
        {"variable_name": node.name, "context": node.context},
    )


def _wildcard(node: Variable, location) -> Pattern:
    return Pattern("wildcard", node, [], location)


def _pin(node: Call, location) -> Pattern:
    return Pattern("pin", node, [], location, {"pinned_variable": node.args[0].name})


def _literal_type(node: Any) -> str:
    if isinstance(node, Atom):
        if node.name in ("true", "false"):
            return "boolean"
        if node.name == "nil":
            return "nil"
        return "atom"
    if isinstance(node, Integer):
        return "integer"
    if isinstance(node, Float):
        return "float"
    return "string"


def _literal(node: Any, location) -> Pattern:
    return Pattern("literal", node, [], location, {"literal_type": _literal_type(node)})


def _tuple(node: TupleNode, location) -> Pattern:
    elements = list(node.elements)
    return Pattern(
        "tuple",
        elements,
        collect_bindings(elements),
        location,
        {"elements": elements, "size": len(elements)},
    )


def _list(node: ListNode, location) -> Pattern:
    elements = list(node.elements)
    has_cons = any(is_call(element, "|") for element in elements)
    return Pattern(
        "list",
        elements,
        collect_bindings(elements),
        location,
        {
            "elements": elements,
            "has_cons_cell": has_cons,
            "length": None if has_cons else len(elements),
        },
    )


def _map(node: MapNode, location) -> Pattern:
    pairs = list(node.pairs)
    return Pattern(
        "map",
        pairs,
        _pair_bindings(node),
        location,
        {"pairs": pairs, "pair_count": len(pairs)},
    )


def _struct_name(node: Any) -> tuple[Any, bool]:
    if is_wildcard(node):
        return "any", True
    if is_alias(node):
        return module_parts(node), False
    return node, False


def _struct(node: Call, location) -> Pattern:
    name, is_any = _struct_name(node.args[0])
    fields = node.args[1]
    return Pattern(
        "struct",
        node,
        _pair_bindings(fields),
        location,
        {"struct_name": name, "is_any_struct": is_any, "pairs": list(fields.pairs)},
    )


def _binary(node: Call, location) -> Pattern:
    segments = list(node.args)
    return Pattern(
        "binary",
        segments,
        _binary_bindings(segments),
        location,
        {
            "segments": segments,
            "has_specifiers": any(is_call(segment, "::") for segment in segments),
        },
    )


def _as(node: Call, location) -> Pattern:
    left, right = node.args
    return Pattern(
        "as",
        node,
        _unique(collect_bindings([left]) + collect_bindings([right])),
        location,
        {"left_pattern": left, "right_pattern": right},
    )


def _guard(node: Call, location) -> Pattern:
    pattern, guard_expression = node.args
    return Pattern(
        "guard",
        node,
        collect_bindings([pattern]),
        location,
        {"pattern": pattern, "guard_expression": guard_expression},
    )


_BUILDERS = {
    "variable": _variable,
    "wildcard": _wildcard,
    "pin": _pin,
    "literal": _literal,
    "tuple": _tuple,
    "list": _list,
    "map": _map,
    "struct": _struct,
    "binary": _binary,
    "as": _as,
    "guard": _guard,
}
