"""Statement block extraction (``__block__``)."""

from dataclasses import dataclass, field
from typing import Any

from .errors import Result, failure, success
from .helpers import extract_location_if, format_error
from .location import SourceLocation
from .nodes import Call


@dataclass(frozen=True)
class IndexedExpression:
    index: int
    expression: Any
    is_last: bool = False


@dataclass(frozen=True)
class Block:
    expressions: list[IndexedExpression] = field(default_factory=list)
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def is_block(node: Any) -> bool:
    return isinstance(node, Call) and node.tag == "__block__"


def _index_expressions(expressions: tuple) -> list[IndexedExpression]:
    last = len(expressions) - 1
    return [
        IndexedExpression(index, expression, index == last)
        for index, expression in enumerate(expressions)
    ]


def extract(node: Any, include_location: bool = True) -> Result:
    if not is_block(node):
        return failure("not_a_block", format_error("Not a block", node))
    return success(
        Block(
            expressions=_index_expressions(node.args),
            location=extract_location_if(node, include_location),
            metadata={
                "expression_count": len(node.args),
                "has_return_value": len(node.args) > 0,
            },
        )
    )


def extract_or_raise(node: Any, include_location: bool = True) -> Block:
    return extract(node, include_location).unwrap()


def expressions_in_order(block: Block) -> list:
    return [indexed.expression for indexed in sorted(block.expressions, key=lambda e: e.index)]


def return_expression(block: Block) -> Any:
    """The last expression of the block (its value), or None for an empty block."""
    for indexed in block.expressions:
        if indexed.is_last:
            return indexed.expression
    return None
