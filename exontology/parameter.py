"""
Function parameter extraction.

A parameter is ``simple`` (bare variable), ``default`` (``param \\\\ value``),
``pin`` (``^var``) or ``pattern`` (any destructuring form). Pattern parameters
carry a ``pattern_type`` sub-classification.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from .errors import Result, failure, success
from .helpers import extract_location_if, format_error
from .location import SourceLocation
from .nodes import (
    SCALAR_TYPES,
    Atom,
    Call,
    ListNode,
    MapNode,
    TupleNode,
    Variable,
    is_call,
    is_keyword_list,
)
from .pattern import is_pin

logger = logging.getLogger(__name__)

PARAMETER_TYPES = ("simple", "default", "pattern", "pin")

_CALL_PATTERN_TYPES = {
    "%": "struct",
    "|": "cons",
    "<<>>": "binary",
    "=": "match",
}


@dataclass(frozen=True)
class Parameter:
    position: int
    name: str | None
    type: str
    expression: Any
    default_value: Any = None
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def is_ignored(name: Any) -> bool:
    """True for ``_`` and names starting with an underscore."""
    return isinstance(name, str) and name.startswith("_")


def pattern_type(node: Any) -> str | None:
    """Structural sub-classification of a destructuring parameter."""
    if isinstance(node, TupleNode):
        if len(node.elements) == 2 and isinstance(node.elements[0], Atom):
            return "tagged_tuple"
        return "tuple"
    if isinstance(node, MapNode):
        return "map"
    if isinstance(node, Call) and node.tag in _CALL_PATTERN_TYPES:
        return _CALL_PATTERN_TYPES[node.tag]
    if isinstance(node, ListNode):
        return "keyword" if node.elements and is_keyword_list(node) else "list"
    if isinstance(node, SCALAR_TYPES):
        return "literal"
    return None


def _name_of(node: Any) -> str | None:
    if isinstance(node, Variable):
        return node.name
    if is_call(node, "\\\\", 2):
        return _name_of(node.args[0])
    if is_pin(node):
        return node.args[0].name
    return None


def is_parameter(node: Any) -> bool:
    return (
        isinstance(node, Variable)
        or is_call(node, "\\\\", 2)
        or is_pin(node)
        or pattern_type(node) is not None
    )


def extract(node: Any, position: int = 0, include_location: bool = True) -> Result:
    location = extract_location_if(node, include_location)

    if is_call(node, "\\\\", 2):
        param, default_value = node.args
        name = _name_of(param)
        sub_type = pattern_type(param)
        return success(
            Parameter(
                position=position,
                name=name,
                type="default",
                expression=node,
                default_value=default_value,
                location=location,
                metadata={
                    "has_default": True,
                    "is_pattern": sub_type is not None and sub_type != "literal",
                    "is_ignored": is_ignored(name),
                    "pattern_type": sub_type,
                },
            )
        )

    if is_pin(node):
        return success(
            Parameter(
                position=position,
                name=node.args[0].name,
                type="pin",
                expression=node,
                location=location,
                metadata={
                    "has_default": False,
                    "is_pattern": False,
                    "is_ignored": False,
                    "pattern_type": None,
                },
            )
        )

    if isinstance(node, Variable):
        return success(
            Parameter(
                position=position,
                name=node.name,
                type="simple",
                expression=node,
                location=location,
                metadata={
                    "has_default": False,
                    "is_pattern": False,
                    "is_ignored": is_ignored(node.name),
                    "pattern_type": None,
                },
            )
        )

    sub_type = pattern_type(node)
    if sub_type is None:
        return failure("not_a_parameter", format_error("Cannot extract parameter", node))
    name = _name_of(node)
    return success(
        Parameter(
            position=position,
            name=name,
            type="pattern",
            expression=node,
            location=location,
            metadata={
                "has_default": False,
                "is_pattern": True,
                "is_ignored": is_ignored(name),
                "pattern_type": sub_type,
            },
        )
    )


def extract_or_raise(node: Any, position: int = 0) -> Parameter:
    return extract(node, position).unwrap()


def extract_all(params: Any, include_location: bool = True) -> list[Parameter]:
    """Extract every parameter with its 0-based position.

    Parameters that cannot be classified are logged and skipped; the rest
    of the list is still returned.
    """
    if not params:
        return []
    extracted = []
    for index, param in enumerate(params):
        result = extract(param, position=index, include_location=include_location)
        if result.ok:
            extracted.append(result.value)
        else:
            logger.warning(f"Failed to extract parameter at position {index}: {result.error}")
    return extracted


def param_id(parameter: Parameter) -> str:
    if parameter.name is None:
        return f"pattern@{parameter.position}"
    return f"{parameter.name}@{parameter.position}"


def has_default(parameter: Parameter) -> bool:
    return parameter.type == "default" or parameter.metadata.get("has_default", False)


def is_pattern_parameter(parameter: Parameter) -> bool:
    return parameter.type == "pattern" or parameter.metadata.get("is_pattern", False)
