"""
Operator extraction.

Operators are classified by symbol into nine categories. The symbols
``-``, ``not``, ``!`` and ``&`` also have a unary form.
"""

from dataclasses import dataclass, field
from typing import Any

from . import walker
from .errors import Result, failure, success
from .helpers import format_error
from .location import SourceLocation, extract_range
from .nodes import Call

OPERATOR_CATEGORIES = {
    "arithmetic": ("+", "-", "*", "/", "div", "rem"),
    "comparison": ("==", "!=", "===", "!==", "<", ">", "<=", ">="),
    "logical": ("and", "or", "not", "&&", "||", "!"),
    "pipe": ("|>",),
    "match": ("=",),
    "capture": ("&",),
    "string_concat": ("<>",),
    "list": ("++", "--"),
    "in": ("in",),
}

_CATEGORY_OF = {
    symbol: category
    for category, symbols in OPERATOR_CATEGORIES.items()
    for symbol in symbols
}

ALL_OPERATORS = frozenset(_CATEGORY_OF)

UNARY_CAPABLE = frozenset({"-", "not", "!", "&"})

SHORTCIRCUIT_OPERATORS = frozenset({"and", "or", "&&", "||"})
STRICT_BOOLEAN_OPERATORS = frozenset({"and", "or", "not"})


@dataclass(frozen=True)
class Operator:
    type: str
    operator_class: str
    symbol: str
    arity: int
    operands: dict = field(default_factory=dict)
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def classify(node: Any) -> str | None:
    if not isinstance(node, Call) or len(node.args) not in (1, 2):
        return None
    if len(node.args) == 1 and node.tag not in UNARY_CAPABLE:
        return None
    return _CATEGORY_OF.get(node.tag)


def is_operator(node: Any) -> bool:
    return classify(node) is not None


def is_unary(node: Any) -> bool:
    return isinstance(node, Call) and node.tag in UNARY_CAPABLE and len(node.args) == 1


def is_binary(node: Any) -> bool:
    return isinstance(node, Call) and node.tag in ALL_OPERATORS and len(node.args) == 2


def operators_of_type(category: str) -> tuple:
    return OPERATOR_CATEGORIES.get(category, ())


def _metadata(symbol: str, category: str) -> dict:
    metadata = {
        "symbol_string": symbol,
        "is_shortcircuit": symbol in SHORTCIRCUIT_OPERATORS,
    }
    if category == "logical":
        metadata["strict_boolean"] = symbol in STRICT_BOOLEAN_OPERATORS
    elif category == "capture":
        metadata["capture_type"] = "function_capture"
    return metadata


def extract(node: Any, include_location: bool = True) -> Result:
    category = classify(node)
    if category is None:
        return failure("not_an_operator", format_error("Not an operator", node))

    location = extract_range(node) if include_location else None
    if len(node.args) == 1:
        return success(
            Operator(
                type=category,
                operator_class="unary",
                symbol=node.tag,
                arity=1,
                operands={"operand": node.args[0]},
                location=location,
                metadata=_metadata(node.tag, category),
            )
        )
    left, right = node.args
    return success(
        Operator(
            type=category,
            operator_class="binary",
            symbol=node.tag,
            arity=2,
            operands={"left": left, "right": right},
            location=location,
            metadata=_metadata(node.tag, category),
        )
    )


def extract_or_raise(node: Any, include_location: bool = True) -> Operator:
    return extract(node, include_location).unwrap()


def extract_all(ast: Any, max_depth: int | None = None) -> list[Operator]:
    """Every operator expression in the tree, outer before inner."""
    return walker.collect(ast, walker.matching(is_operator, extract), max_depth)
