"""
Guard extraction.

Flattens ``and``/``or`` trees into an ordered list of leaf expressions and
classifies how they are combined. Known guard functions found anywhere in
the leaves (including nested call arguments) are reported as metadata.
"""

from dataclasses import dataclass, field
from typing import Any

from .errors import Result, failure, success
from .helpers import extract_location_if, format_error
from .location import SourceLocation
from .nodes import Call, is_call, is_nil

COMBINATORS = ("none", "and", "or", "mixed")

TYPE_CHECK_FUNCTIONS = frozenset({
    "is_atom", "is_binary", "is_bitstring", "is_boolean", "is_exception", "is_float",
    "is_function", "is_integer", "is_list", "is_map", "is_map_key", "is_nil",
    "is_number", "is_pid", "is_port", "is_reference", "is_struct", "is_tuple",
})

COMPARISON_OPERATORS = frozenset({"==", "!=", "===", "!==", "<", ">", "<=", ">="})

ARITHMETIC_OPERATORS = frozenset({"+", "-", "*", "/"})

OTHER_GUARD_FUNCTIONS = frozenset({
    "abs", "binary_part", "bit_size", "byte_size", "ceil", "div", "elem", "floor",
    "hd", "in", "length", "map_size", "node", "not", "rem", "round", "self", "tl",
    "trunc", "tuple_size",
})

KNOWN_GUARD_FUNCTIONS = (
    TYPE_CHECK_FUNCTIONS | COMPARISON_OPERATORS | ARITHMETIC_OPERATORS | OTHER_GUARD_FUNCTIONS
)


@dataclass(frozen=True)
class Guard:
    expression: Any
    expressions: list = field(default_factory=list)
    combinator: str = "none"
    guard_functions: list[str] = field(default_factory=list)
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def is_guard(node: Any) -> bool:
    return isinstance(node, Call)


def _decompose(node: Any) -> list:
    if is_call(node, "and", 2) or is_call(node, "or", 2):
        return _decompose(node.args[0]) + _decompose(node.args[1])
    return [node]


def _contains(node: Any, combinator: str, other: str) -> bool:
    if is_call(node, combinator):
        return True
    if is_call(node, other, 2):
        return _contains(node.args[0], combinator, other) or _contains(
            node.args[1], combinator, other
        )
    return False


def _combinator(node: Any) -> str:
    if is_call(node, "and", 2):
        left, right = node.args
        return "mixed" if _contains(left, "or", "and") or _contains(right, "or", "and") else "and"
    if is_call(node, "or", 2):
        left, right = node.args
        return "mixed" if _contains(left, "and", "or") or _contains(right, "and", "or") else "or"
    return "none"


def _functions_in(node: Any) -> list[str]:
    if not isinstance(node, Call):
        return []
    nested = [name for arg in node.args for name in _functions_in(arg)]
    if node.tag in KNOWN_GUARD_FUNCTIONS:
        return [node.tag] + nested
    return nested


def _guard_functions(expressions: list) -> list[str]:
    return sorted({name for expression in expressions for name in _functions_in(expression)})


def extract(expression: Any, include_location: bool = True) -> Result:
    if expression is None or is_nil(expression):
        return failure("not_a_guard", "Cannot extract guard from nil")
    if not isinstance(expression, Call):
        return failure("not_a_guard", format_error("Cannot extract guard", expression))

    expressions = _decompose(expression)
    functions = _guard_functions(expressions)
    return success(
        Guard(
            expression=expression,
            expressions=expressions,
            combinator=_combinator(expression),
            guard_functions=functions,
            location=extract_location_if(expression, include_location),
            metadata={
                "count": len(expressions),
                "has_type_check": any(name in TYPE_CHECK_FUNCTIONS for name in functions),
                "has_comparison": any(name in COMPARISON_OPERATORS for name in functions),
            },
        )
    )


def extract_or_raise(expression: Any, include_location: bool = True) -> Guard:
    return extract(expression, include_location).unwrap()


def extract_from_clause(clause: Any) -> Result:
    """Guard of any clause-like record with a ``guard`` attribute.

    Succeeds with None when the clause has no guard.
    """
    if not hasattr(clause, "guard"):
        return failure("invalid_clause", "Invalid clause structure")
    if clause.guard is None:
        return success(None)
    return extract(clause.guard)


def has_and(guard: Guard) -> bool:
    return guard.combinator in ("and", "mixed")


def has_or(guard: Guard) -> bool:
    return guard.combinator in ("or", "mixed")


def has_type_check(guard: Guard) -> bool:
    return guard.metadata.get("has_type_check", False)


def has_comparison(guard: Guard) -> bool:
    return guard.metadata.get("has_comparison", False)


def expression_count(guard: Guard) -> int:
    return len(guard.expressions)
